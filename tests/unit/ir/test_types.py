import pytest

from rivet.exceptions import TypeException
from rivet.ir.types import (
    BOOL,
    F64,
    PTR,
    VOID,
    FloatType,
    IntegerType,
    default_int_type,
    is_tracked_type,
    parse_type,
)
from rivet.settings import RIVET_DEFAULT_INT_WIDTH


@pytest.mark.parametrize("s,expected", [("i1", BOOL), ("i8", IntegerType(8)), ("i256", IntegerType(256))])
def test_parse_integer_types(s, expected):
    typ = parse_type(s)
    assert typ == expected
    assert typ.is_integer
    assert str(typ) == s


def test_parse_other_types():
    assert parse_type("ptr") == PTR
    assert parse_type("f64") == F64
    assert parse_type("f32") == FloatType(32)
    assert parse_type("void") == VOID


@pytest.mark.parametrize("s", ["i0", "int", "f7", "u8", "", "pointer"])
def test_parse_bad_types(s):
    with pytest.raises(TypeException):
        parse_type(s)


def test_bool_is_integer():
    assert BOOL.is_bool
    assert BOOL.is_integer
    assert not IntegerType(8).is_bool


def test_tracked_types():
    assert is_tracked_type(BOOL)
    assert is_tracked_type(IntegerType(32))
    assert not is_tracked_type(PTR)
    assert not is_tracked_type(F64)
    assert not is_tracked_type(VOID)


def test_default_int_type():
    assert default_int_type() == IntegerType(RIVET_DEFAULT_INT_WIDTH)
