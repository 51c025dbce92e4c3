import contextlib
from typing import Optional

from rivet.ir.analysis.reachable_values import ReachableValues
from rivet.ir.basicblock import IRBasicBlock, IRPrinter, ir_printer
from rivet.ir.function import IRFunction
from rivet.settings import RIVET_REPORT_COLUMN_WIDTH

BANNER = "================================================="
SEPARATOR = "-------------------------------------------------"


def _format_value(value) -> str:
    return repr(value)


def format_riv_report(
    fn: IRFunction, result: ReachableValues, column_width: Optional[int] = None
) -> str:
    """
    Render the reachable values of `fn` as a two-column table:

        =================================================
        rivet: reachable values of foo
        =================================================
        BB id      Reachable Integer Values
        -------------------------------------------------
        BB entry
                     %a: i32
        BB exit
                     %a: i32
                     %x: i32 = add %a, 1

    Blocks are listed in the order the analysis visited them, followed by
    the blocks it never reached.
    """
    if column_width is None:
        column_width = RIVET_REPORT_COLUMN_WIDTH

    lines = [BANNER, f"rivet: reachable values of {fn.name}", BANNER]
    lines.append(f"{'BB id':<10} {'Reachable Integer Values':<{column_width}}")
    lines.append(SEPARATOR)

    for bb in result:
        lines.append(f"BB {bb.label.name:<12} {'':<{column_width}}")
        for value in result.ordered(bb):
            lines.append(f"{'':<12} {_format_value(value):<{column_width}}")

    for bb in fn.get_basic_blocks():
        if bb in result:
            continue
        lines.append(f"BB {bb.label.name:<12} {'(unreached)':<{column_width}}")

    return "\n".join(lines) + "\n"


class RIVPrinter(IRPrinter):
    """
    Annotate the textual form of a function with the values reachable from
    each basic block. The annotations are comments, so the output can be
    parsed again.
    """

    def __init__(self, result: ReachableValues):
        self.result = result

    def _pre_block(self, bb: IRBasicBlock) -> str:
        if bb not in self.result:
            return "    ; riv: (unreached)\n"
        names = ", ".join(value.value_name for value in self.result.ordered(bb))
        return f"    ; riv: {names}\n".replace(" \n", "\n")

    @contextlib.contextmanager
    def print_context(self):
        token = ir_printer.set(self)
        try:
            yield
        finally:
            ir_printer.reset(token)


def annotate_function(fn: IRFunction, result: ReachableValues) -> str:
    with RIVPrinter(result).print_context():
        return str(fn)
