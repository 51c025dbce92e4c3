from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _version

__version__: str
try:
    __version__ = _version("rivet")
except PackageNotFoundError:
    from rivet.version import version

    __version__ = version
