from __future__ import annotations

from typing import TYPE_CHECKING, Type, TypeVar

if TYPE_CHECKING:
    from rivet.ir.function import IRFunction


class IRAnalysis:
    """
    Base class for all IR analyses.

    An analysis is a pure function of the IR it is attached to: `analyze()`
    takes no parameters, so there is exactly one result per function and
    analysis class. Anything parametrised (e.g. by a type filter) is not an
    analysis and is computed outside of the cache.
    """

    function: IRFunction
    analyses_cache: IRAnalysesCache

    def __init__(self, analyses_cache: IRAnalysesCache, function: IRFunction):
        self.analyses_cache = analyses_cache
        self.function = function

    def analyze(self):
        """
        Override this method to perform the analysis.
        """
        raise NotImplementedError

    def invalidate(self):
        """
        Override this method to drop derived state, and to invalidate the
        analyses which were computed from this one.
        """
        pass


T = TypeVar("T", bound=IRAnalysis)


class IRAnalysesCache:
    """
    The analyses computed for one function, keyed by analysis class.
    Analyses of different functions never share a cache.
    """

    function: IRFunction
    analyses_cache: dict[Type[IRAnalysis], IRAnalysis]

    def __init__(self, function: IRFunction):
        self.analyses_cache = {}
        self.function = function

    def request_analysis(self, analysis_cls: Type[T]) -> T:
        """
        Return the cached `analysis_cls` for this function, running it first
        if it is not cached yet.
        """
        assert issubclass(analysis_cls, IRAnalysis), f"{analysis_cls} is not an IRAnalysis"
        cached = self.analyses_cache.get(analysis_cls)
        if cached is not None:
            assert isinstance(cached, analysis_cls)  # help mypy
            return cached

        analysis = analysis_cls(self, self.function)
        # register before running, so that analyses requested from inside
        # `analyze()` can invalidate it
        self.analyses_cache[analysis_cls] = analysis
        analysis.analyze()
        return analysis

    def invalidate_analysis(self, analysis_cls: Type[IRAnalysis]):
        """
        Drop `analysis_cls` (and, through its `invalidate()`, whatever
        depends on it). Dropping an analysis which is not cached is a no-op.
        """
        assert issubclass(analysis_cls, IRAnalysis), f"{analysis_cls} is not an IRAnalysis"
        analysis = self.analyses_cache.pop(analysis_cls, None)
        if analysis is None:
            return
        analysis.invalidate()

    def force_analysis(self, analysis_cls: Type[T]) -> T:
        """
        Recompute `analysis_cls` even if a cached result exists.
        """
        self.invalidate_analysis(analysis_cls)
        return self.request_analysis(analysis_cls)
