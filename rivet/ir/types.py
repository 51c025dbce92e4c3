"""
Value types of the rivet IR.

Every value in the IR (globals, function parameters and instruction outputs)
carries one of these types. Types are immutable and compare by content, so
`IntegerType(32) == IntegerType(32)`.
"""

import re
from dataclasses import dataclass

from rivet.exceptions import TypeException
from rivet.settings import RIVET_DEFAULT_INT_WIDTH


class IRType:
    @property
    def is_integer(self) -> bool:
        return False

    @property
    def is_pointer(self) -> bool:
        return False

    @property
    def is_float(self) -> bool:
        return False


@dataclass(frozen=True)
class IntegerType(IRType):
    width: int

    def __post_init__(self):
        if self.width < 1:
            raise TypeException(f"invalid integer width: {self.width}")

    @property
    def is_integer(self) -> bool:
        return True

    @property
    def is_bool(self) -> bool:
        return self.width == 1

    def __str__(self) -> str:
        return f"i{self.width}"


@dataclass(frozen=True)
class FloatType(IRType):
    width: int

    def __post_init__(self):
        if self.width not in (16, 32, 64, 128):
            raise TypeException(f"invalid float width: {self.width}")

    @property
    def is_float(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"f{self.width}"


@dataclass(frozen=True)
class PointerType(IRType):
    @property
    def is_pointer(self) -> bool:
        return True

    def __str__(self) -> str:
        return "ptr"


@dataclass(frozen=True)
class VoidType(IRType):
    def __str__(self) -> str:
        return "void"


BOOL = IntegerType(1)
PTR = PointerType()
F64 = FloatType(64)
VOID = VoidType()


def default_int_type() -> IntegerType:
    return IntegerType(RIVET_DEFAULT_INT_WIDTH)


_INT_RE = re.compile(r"i([0-9]+)")
_FLOAT_RE = re.compile(r"f([0-9]+)")


def parse_type(s: str) -> IRType:
    """
    Parse the textual form of a type: `i<N>`, `f<N>`, `ptr` or `void`.
    """
    if s == "ptr":
        return PTR
    if s == "void":
        return VOID
    if (m := _INT_RE.fullmatch(s)) is not None:
        return IntegerType(int(m.group(1)))
    if (m := _FLOAT_RE.fullmatch(s)) is not None:
        return FloatType(int(m.group(1)))
    raise TypeException(f"unknown type: {s}")


def is_tracked_type(typ: IRType) -> bool:
    """
    The type class followed by the reachable-values analysis: integers of
    any width, booleans (`i1`) included.
    """
    return typ.is_integer
