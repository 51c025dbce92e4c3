import pytest

from rivet.ir.check_ir import (
    BasicBlockNotTerminated,
    DuplicateDefinition,
    UnknownJumpTarget,
    VarNotDefined,
    check_ir_ctx,
    find_semantic_errors,
)
from rivet.ir.parser import parse_ir
from tests.ir_utils import parse_from_basic_block


def test_valid_ir():
    code = """
    main:
        %1 = 1
        ret %1
    """

    ctx = parse_from_basic_block(code)
    check_ir_ctx(ctx)

    assert find_semantic_errors(ctx) == []


def test_not_terminated():
    """
    Test if the check finds the unterminated basic blocks
    """
    code = """
    bb0:
        %1 = 1
    bb1:
        jmp @bb0
    bb2:
        stop
    bb3:
        %2 = add 10, 20
    """

    ctx = parse_from_basic_block(code)
    with pytest.raises(ExceptionGroup) as e:
        check_ir_ctx(ctx)

    errors = e.value.exceptions
    assert all(isinstance(err, BasicBlockNotTerminated) for err in errors)
    assert [err.basicblock.label.name for err in errors] == ["bb0", "bb3"]


def test_unknown_jump_target():
    code = """
    main:
        jnz 1, @ok, @missing
    ok:
        stop
    """

    ctx = parse_from_basic_block(code)
    errors = find_semantic_errors(ctx)

    assert len(errors) == 1
    assert isinstance(errors[0], UnknownJumpTarget)
    assert errors[0].label.name == "missing"
    assert "@missing" in str(errors[0])


def test_nonexistent_var():
    """
    Test use of undefined variable
    """
    code = """
    main:
        ret %1
    """

    ctx = parse_from_basic_block(code)
    with pytest.raises(ExceptionGroup) as e:
        check_ir_ctx(ctx)

    errors = e.value.exceptions
    assert all(isinstance(err, VarNotDefined) for err in errors)
    assert [err.var.name for err in errors] == ["%1"]


def test_use_before_definition_in_layout_order():
    # definitions are not required to precede uses in block order
    code = """
    main:
        jmp @def
    use:
        ret %x
    def:
        %x = 1
        jmp @use
    """

    ctx = parse_from_basic_block(code)
    assert find_semantic_errors(ctx) == []


def test_params_are_definitions():
    ctx = parse_from_basic_block("main:\n    ret %a", params="%a: i32")
    assert find_semantic_errors(ctx) == []


def test_duplicate_definition():
    code = """
    main:
        %x = 1
        jmp @next
    next:
        %x = 2
        %a = 3
        stop
    """

    ctx = parse_from_basic_block(code, params="%a: i32")
    errors = find_semantic_errors(ctx)

    assert all(isinstance(err, DuplicateDefinition) for err in errors)
    assert [err.var.name for err in errors] == ["%x", "%a"]


def test_errors_across_functions():
    ctx = parse_from_basic_block("main:\n    ret %y", funcname="f")
    ctx2 = parse_from_basic_block("main:\n    %z = 1", funcname="g")
    ctx.add_function(ctx2.get_function(next(iter(ctx2.functions))))

    errors = find_semantic_errors(ctx)
    assert [type(err) for err in errors] == [VarNotDefined, BasicBlockNotTerminated]


def test_global_operands_are_not_jump_targets():
    source = """
    global @flag: i1

    function main() {
    main:
        jnz @flag, @ok, @done
    ok:
        ret @flag
    done:
        stop
    }
    """

    ctx = parse_ir(source)
    check_ir_ctx(ctx)

    assert find_semantic_errors(ctx) == []
