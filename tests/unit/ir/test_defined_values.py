from rivet.ir.analysis import DefinedValuesAnalysis, IRAnalysesCache
from rivet.ir.analysis.defined_values import collect_defined_values
from rivet.ir.basicblock import IRLabel
from tests.ir_utils import parse_from_basic_block


def _get_fn(code, params=""):
    ctx = parse_from_basic_block(code, params=params)
    return ctx.get_function(IRLabel("_global"))


def test_collects_integer_outputs_in_order():
    code = """
    entry:
        %a = 1
        %p = alloca 32
        %b: i8 = trunc %a
        store %b, %p
        %f = fadd %x, %x
        %c = lt %a, 2
        jmp @exit
    exit:
        stop
    """
    fn = _get_fn(code, params="%x: f64")
    entry, exit_bb = fn.get_basic_blocks()

    defined = collect_defined_values(fn)

    names = [inst.output.name for inst in defined[entry]]
    # pointers, floats and instructions without output are skipped
    assert names == ["%a", "%b", "%c"]
    assert len(defined[exit_bb]) == 0


def test_every_block_has_an_entry():
    code = """
    entry:
        jmp @exit
    dead:
        %d = 1
        jmp @exit
    exit:
        stop
    """
    fn = _get_fn(code)

    defined = collect_defined_values(fn)

    assert set(defined.keys()) == set(fn.get_basic_blocks())
    assert [inst.output.name for inst in defined[fn.get_basic_block("dead")]] == ["%d"]


def test_custom_type_filter():
    code = """
    entry:
        %a = 1
        %p = alloca 32
        %c = eq %a, 1
        stop
    """
    fn = _get_fn(code)

    defined = collect_defined_values(fn, tracked=lambda typ: typ.is_pointer)
    assert [inst.output.name for inst in defined[fn.entry]] == ["%p"]

    defined = collect_defined_values(fn, tracked=lambda typ: typ.is_integer and typ.is_bool)
    assert [inst.output.name for inst in defined[fn.entry]] == ["%c"]


def test_defined_values_analysis():
    code = """
    entry:
        %a = 1
        stop
    """
    fn = _get_fn(code)
    ac = IRAnalysesCache(fn)

    analysis = ac.request_analysis(DefinedValuesAnalysis)
    (inst,) = analysis.defined_values(fn.entry)
    assert inst is fn.entry.instructions[0]

    # cached
    assert ac.request_analysis(DefinedValuesAnalysis) is analysis
