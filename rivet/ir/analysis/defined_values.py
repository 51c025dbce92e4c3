from typing import Callable

from rivet.ir.analysis import IRAnalysis
from rivet.ir.basicblock import IRBasicBlock, IRInstruction
from rivet.ir.function import IRFunction
from rivet.ir.types import IRType, is_tracked_type
from rivet.utils import OrderedSet

TypeFilter = Callable[[IRType], bool]

DefinitionSet = dict[IRBasicBlock, OrderedSet[IRInstruction]]


def collect_defined_values(fn: IRFunction, tracked: TypeFilter = is_tracked_type) -> DefinitionSet:
    """
    For every basic block of `fn`, the instructions in it which produce a
    value of a tracked type, in program order. Every block gets an entry,
    possibly empty.
    """
    defined: DefinitionSet = {}
    for bb in fn.get_basic_blocks():
        values = defined[bb] = OrderedSet()
        for inst in bb.instructions:
            if inst.output is not None and tracked(inst.type):
                values.add(inst)
    return defined


class DefinedValuesAnalysis(IRAnalysis):
    """
    Integer values defined locally in each basic block. Other type filters
    go through `collect_defined_values` directly.
    """

    defined: DefinitionSet

    def analyze(self):
        self.defined = collect_defined_values(self.function)

    def defined_values(self, bb: IRBasicBlock) -> OrderedSet[IRInstruction]:
        return self.defined[bb]

    def invalidate(self):
        from rivet.ir.analysis import ReachableValuesAnalysis

        del self.defined

        self.analyses_cache.invalidate_analysis(ReachableValuesAnalysis)
