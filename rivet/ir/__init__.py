from typing import Optional

from rivet.ir.analysis import DominatorTreeAnalysis, IRAnalysesCache, ReachableValuesAnalysis
from rivet.ir.analysis.defined_values import TypeFilter, collect_defined_values
from rivet.ir.analysis.reachable_values import (
    ReachableValues,
    compute_reachable_values,
    function_globals,
)
from rivet.ir.check_ir import check_ir_ctx
from rivet.ir.context import IRContext
from rivet.ir.function import IRFunction
from rivet.ir.types import is_tracked_type
from rivet.warnings import UnreachableBlockWarning, rivet_warn


def analyze_function(
    fn: IRFunction, tracked: TypeFilter = is_tracked_type, ac: Optional[IRAnalysesCache] = None
) -> ReachableValues:
    """
    Compute the values of a `tracked` type reachable from each block of
    `fn`, warning about every block which the entry does not reach.

    Only the default (integer) result is cached in `ac`; any other filter
    shares the cached dominator tree but is recomputed on every call.
    """
    if ac is None:
        ac = IRAnalysesCache(fn)

    if tracked is is_tracked_type:
        result = ac.request_analysis(ReachableValuesAnalysis).result
    else:
        dom = ac.request_analysis(DominatorTreeAnalysis)
        defined = collect_defined_values(fn, tracked)
        result = compute_reachable_values(defined, dom, fn.args, function_globals(fn), tracked)

    for bb in fn.get_basic_blocks():
        if bb not in result:
            rivet_warn(UnreachableBlockWarning(f"{fn.name}: basic block {bb.label} is unreachable"))

    return result


def analyze_context(
    ctx: IRContext, tracked: TypeFilter = is_tracked_type, check: bool = True
) -> dict[IRFunction, ReachableValues]:
    """
    Compute the reachable values of every function in `ctx`.

    With `check`, the context is validated first and an ExceptionGroup of
    IRErrors is raised if it is malformed.
    """
    if check:
        check_ir_ctx(ctx)

    return {fn: analyze_function(fn, tracked) for fn in ctx.get_functions()}
