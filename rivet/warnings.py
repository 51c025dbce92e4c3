import contextlib
import warnings
from typing import Optional

from rivet.exceptions import _BaseRivetException


class RivetWarning(_BaseRivetException, Warning):
    pass


# print a warning
def rivet_warn(warning: RivetWarning | str):
    if isinstance(warning, str):
        warning = RivetWarning(warning)
    warnings.warn(warning, stacklevel=2)


@contextlib.contextmanager
def warnings_filter(warnings_control: Optional[str]):
    # note: using warnings.catch_warnings() since it saves and restores
    # the warnings filter
    with warnings.catch_warnings():
        set_warnings_filter(warnings_control)
        yield


def set_warnings_filter(warnings_control: Optional[str]):
    if warnings_control == "error":
        warnings_filter = "error"
    elif warnings_control == "none":
        warnings_filter = "ignore"
    else:
        assert warnings_control is None  # sanity
        warnings_filter = "default"

    if warnings_control is not None:
        # warnings.simplefilter only adds to the warnings filters,
        # so we should clear warnings filter between calls to simplefilter()
        warnings.resetwarnings()

    warnings.simplefilter(warnings_filter, category=RivetWarning)  # type: ignore[arg-type]


class UnreachableBlockWarning(RivetWarning):
    """
    Warn about basic blocks that are not reachable from the function entry,
    and so have no reachable-value result
    """

    pass
