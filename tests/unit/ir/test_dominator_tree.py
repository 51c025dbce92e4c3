import pytest

from rivet.ir.analysis import CFGAnalysis, DominatorTreeAnalysis, IRAnalysesCache
from rivet.ir.analysis.dominators import StaticDominatorTree
from rivet.ir.basicblock import IRLabel
from rivet.ir.context import IRContext
from rivet.ir.function import IRFunction
from rivet.utils import OrderedSet
from tests.ir_utils import add_bb, parse_from_basic_block


def _make_test_ctx() -> IRFunction:
    ctx = IRContext()
    fn = ctx.create_function("1")

    fn.entry.append_instruction("jmp", IRLabel("2"))

    add_bb(fn, "7", [])
    add_bb(fn, "6", ["7", "2"])
    add_bb(fn, "5", ["6", "3"])
    add_bb(fn, "4", ["6"])
    add_bb(fn, "3", ["5"])
    add_bb(fn, "2", ["3", "4"])

    return fn


def test_dominator_frontier_calculation():
    fn = _make_test_ctx()
    bb1, bb2, bb3, bb4, bb5, bb6, bb7 = [fn.get_basic_block(str(i)) for i in range(1, 8)]

    ac = IRAnalysesCache(fn)
    dom = ac.request_analysis(DominatorTreeAnalysis)
    df = dom.dominator_frontiers

    assert len(df[bb1]) == 0, df[bb1]
    assert df[bb2] == OrderedSet({bb2}), df[bb2]
    assert df[bb3] == OrderedSet({bb3, bb6}), df[bb3]
    assert df[bb4] == OrderedSet({bb6}), df[bb4]
    assert df[bb5] == OrderedSet({bb3, bb6}), df[bb5]
    assert df[bb6] == OrderedSet({bb2}), df[bb6]
    assert len(df[bb7]) == 0, df[bb7]

    assert dom.dominance_frontier([bb4, bb5]) == OrderedSet({bb6, bb3})


def test_immediate_dominators():
    fn = _make_test_ctx()
    bb1, bb2, bb3, bb4, bb5, bb6, bb7 = [fn.get_basic_block(str(i)) for i in range(1, 8)]

    ac = IRAnalysesCache(fn)
    dom = ac.request_analysis(DominatorTreeAnalysis)

    assert dom.immediate_dominator(bb1) is None
    assert dom.immediate_dominator(bb2) is bb1
    assert dom.immediate_dominator(bb3) is bb2
    assert dom.immediate_dominator(bb4) is bb2
    assert dom.immediate_dominator(bb5) is bb3
    assert dom.immediate_dominator(bb6) is bb2
    assert dom.immediate_dominator(bb7) is bb6

    assert dom.root is bb1
    assert set(dom.children(bb1)) == {bb2}
    assert set(dom.children(bb2)) == {bb3, bb4, bb6}
    assert set(dom.children(bb6)) == {bb7}
    assert len(dom.children(bb7)) == 0

    assert dom.dominates(bb2, bb7)
    assert dom.dominates(bb3, bb3)
    assert not dom.dominates(bb3, bb6)

    assert dom.get_all_dominated_blocks(bb2) == OrderedSet({bb3, bb4, bb5, bb6, bb7})


def test_dom_pre_order():
    fn = _make_test_ctx()
    ac = IRAnalysesCache(fn)
    dom = ac.request_analysis(DominatorTreeAnalysis)

    order = list(dom.dom_pre_order)
    assert len(order) == 7
    seen = set()
    for bb in order:
        idom = dom.immediate_dominator(bb)
        assert idom is None or idom in seen
        seen.add(bb)


def test_unreachable_blocks_are_not_in_tree():
    code = """
    entry:
        jmp @join
    dead:
        jmp @join
    join:
        stop
    """
    ctx = parse_from_basic_block(code)
    fn = ctx.get_function(IRLabel("_global"))
    entry, dead, join = fn.get_basic_blocks()

    ac = IRAnalysesCache(fn)
    dom = ac.request_analysis(DominatorTreeAnalysis)

    # the edge from dead code does not make `join` a merge point
    assert dom.immediate_dominator(join) is entry
    assert not dom.in_tree(dead)
    assert dom.in_tree(join)
    assert list(dom.children(entry)) == [join]


def test_cfg_invalidation_invalidates_dominators():
    fn = _make_test_ctx()
    ac = IRAnalysesCache(fn)
    dom = ac.request_analysis(DominatorTreeAnalysis)

    ac.invalidate_analysis(CFGAnalysis)

    assert DominatorTreeAnalysis not in ac.analyses_cache
    assert ac.request_analysis(DominatorTreeAnalysis) is not dom


def test_static_dominator_tree():
    fn = _make_test_ctx()
    bb1, bb2, bb3 = [fn.get_basic_block(str(i)) for i in range(1, 4)]

    tree = StaticDominatorTree(bb1, {bb2: bb1, bb3: bb1})

    assert tree.root is bb1
    assert tree.children(bb1) == [bb2, bb3]
    assert tree.children(bb2) == []


def test_static_dominator_tree_root_has_no_parent():
    fn = _make_test_ctx()
    bb1, bb2 = fn.get_basic_block("1"), fn.get_basic_block("2")

    with pytest.raises(AssertionError):
        StaticDominatorTree(bb1, {bb1: bb2})
