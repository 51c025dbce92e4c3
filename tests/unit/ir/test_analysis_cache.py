from rivet.ir.analysis import CFGAnalysis, IRAnalysesCache, IRAnalysis, ReachableValuesAnalysis
from rivet.ir.basicblock import IRLabel
from tests.ir_utils import parse_from_basic_block


class _CountingAnalysis(IRAnalysis):
    runs = 0

    def analyze(self):
        _CountingAnalysis.runs += 1


def _get_fn():
    code = """
    main:
        %1 = 1
        jmp @exit
    exit:
        stop
    """
    return parse_from_basic_block(code).get_function(IRLabel("_global"))


def test_request_is_cached():
    ac = IRAnalysesCache(_get_fn())
    _CountingAnalysis.runs = 0

    first = ac.request_analysis(_CountingAnalysis)
    second = ac.request_analysis(_CountingAnalysis)

    assert first is second
    assert _CountingAnalysis.runs == 1


def test_force_analysis_reruns():
    ac = IRAnalysesCache(_get_fn())
    _CountingAnalysis.runs = 0

    first = ac.request_analysis(_CountingAnalysis)
    second = ac.force_analysis(_CountingAnalysis)

    assert first is not second
    assert _CountingAnalysis.runs == 2
    assert ac.request_analysis(_CountingAnalysis) is second


def test_invalidate_missing_analysis_is_noop():
    ac = IRAnalysesCache(_get_fn())
    ac.invalidate_analysis(CFGAnalysis)
    assert len(ac.analyses_cache) == 0


def test_invalidation_cascades_to_reachable_values():
    fn = _get_fn()
    ac = IRAnalysesCache(fn)
    old = ac.request_analysis(ReachableValuesAnalysis)

    # rewire the cfg: `exit` no longer follows `main`
    fn.entry.instructions[-1].operands = [IRLabel("main")]
    ac.invalidate_analysis(CFGAnalysis)

    assert ReachableValuesAnalysis not in ac.analyses_cache
    new = ac.request_analysis(ReachableValuesAnalysis)
    assert new is not old
    assert not new.result.is_reached(fn.get_basic_block("exit"))
    assert new.unreached_blocks() == [fn.get_basic_block("exit")]
