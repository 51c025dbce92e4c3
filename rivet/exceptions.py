import copy

from rivet.settings import RIVET_ERROR_CONTEXT_LINES, RIVET_ERROR_LINE_NUMBERS


class _BaseRivetException(Exception):
    """
    Base rivet exception class.

    This exception is not raised directly. Other exceptions inherit it in
    order to display source annotations in the error string.
    """

    def __init__(self, message="Error Message not found.", source=None, hint=None):
        """
        Exception initializer.

        Arguments
        ---------
        message : str
            Error message to display with the exception.
        source : Tuple[str, int, int], optional
            Tuple of (source_code, lineno, col_offset) indicating where the
            exception occurred in textual IR.
        hint : str | Callable[[], str], optional
            Additional advice appended to the message.
        """
        self._message = message
        self._hint = hint
        self.source = source

    def with_source(self, source_code, lineno, col_offset=None):
        """
        Creates a copy of this exception pointing at a location in `source_code`.
        """
        exc = copy.copy(self)
        exc.source = (source_code, lineno, col_offset)
        return exc

    @property
    def lineno(self):
        return self.source[1] if self.source is not None else None

    @property
    def col_offset(self):
        return self.source[2] if self.source is not None else None

    @property
    def hint(self):
        # some hints are expensive to compute, so we wait until the last
        # minute when the formatted message is actually requested to compute
        # them.
        if callable(self._hint):
            return self._hint()
        return self._hint

    @property
    def message(self):
        msg = self._message
        if self.hint:
            msg += f"\n\n  (hint: {self.hint})"
        return msg

    def __str__(self):
        if self.source is None:
            return self.message

        from rivet.utils import annotate_source_code

        source_code, lineno, col_offset = self.source
        try:
            annotation = annotate_source_code(
                source_code,
                lineno,
                col_offset,
                context_lines=RIVET_ERROR_CONTEXT_LINES,
                line_numbers=RIVET_ERROR_LINE_NUMBERS,
            )
        except ValueError:
            return f"line {lineno}:{col_offset} {self.message}"

        col_str = "" if col_offset is None else str(col_offset)
        return f"{self.message}\n\n  line {lineno}:{col_str}\n{annotation}"


class RivetException(_BaseRivetException):
    pass


class ParseException(RivetException):
    """Invalid textual IR."""


class TypeException(RivetException):
    """Unknown or malformed IR type."""


class RivetInternalException(_BaseRivetException):
    """
    Base rivet internal exception class.

    Internal exceptions are raised when an invariant that should be guaranteed
    by construction does not hold, i.e. a bug in rivet or in a caller that
    bypassed input validation.
    """

    def __str__(self):
        return f"{super().__str__()}\n\nThis is an unhandled internal error in rivet."


class AnalysisPanic(RivetInternalException):
    """General unexpected error during analysis."""


class UnreachedBlock(KeyError):
    """
    Lookup of a basic block which the analysis never reached (it is not
    spanned by the dominator tree, e.g. dead code). Distinct from a block
    whose reachable set is empty.
    """

    def __init__(self, bb):
        self.bb = bb
        super().__init__(bb)

    def __str__(self):
        label = getattr(self.bb, "label", self.bb)
        return f"basic block {label} was not reached by the analysis"
