import json
from typing import Optional

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput, VisitError

from rivet.exceptions import ParseException, RivetException
from rivet.ir.basicblock import (
    NO_OUTPUT_INSTRUCTIONS,
    TYPE_PRESERVING_INSTRUCTIONS,
    IRBasicBlock,
    IRGlobalRef,
    IRInstruction,
    IRLabel,
    IRLiteral,
    IROperand,
    IRVariable,
)
from rivet.ir.context import IRContext
from rivet.ir.function import IRFunction
from rivet.ir.types import IRType, parse_type

IR_GRAMMAR = r"""
    %import common.ESCAPED_STRING
    %import common.WS_INLINE

    # newlines separate statements. comments run to the end of the line and
    # are folded into the newline token, so blank and comment-only lines
    # collapse into a single separator.
    _NL: /((\/\/|[;#])[^\n]*|\r?\n[\t ]*)+/

    start: _NL? (global_def | function)*

    global_def: "global" "@" name ":" type ["=" CONST] _NL

    function: "function" name "(" [param ("," param)*] ")" "{" _NL block_item* "}" _NL?
    param: VAR_IDENT ":" type

    ?block_item: label_decl | statement
    label_decl: name ":" _NL

    statement: (assignment | instruction) _NL
    assignment: VAR_IDENT [":" type] "=" expr
    ?expr: instruction | operand

    instruction: IDENT [operand ("," operand)*]

    ?operand: VAR_IDENT | CONST | label_ref
    label_ref: "@" name

    name: IDENT | ESCAPED_STRING
    type: IDENT

    VAR_IDENT: /%[0-9a-zA-Z_.]+/
    IDENT: /[0-9a-zA-Z_.]+/
    CONST.2: /0x[0-9a-fA-F]+|-?[0-9]+/

    %ignore WS_INLINE
    """

IR_PARSER = Lark(IR_GRAMMAR, parser="lalr")


def _set_last_var(fn: IRFunction):
    for bb in fn.get_basic_blocks():
        for inst in bb.instructions:
            if inst.output is None:
                continue
            varname = inst.output.plain_name
            if varname.isdigit():
                fn.last_variable = max(fn.last_variable, int(varname))


def _resolve_ref(ctx: IRContext, fn: IRFunction, op: IROperand) -> IROperand:
    # `@name` is a block of `fn` if there is one, otherwise a global
    if not isinstance(op, IRLabel) or fn.has_basic_block(op.name):
        return op
    if op.name in ctx.globals:
        return IRGlobalRef(op.name)
    return op


def _infer_types(fn: IRFunction, statements: list["_Statement"]) -> None:
    """
    Fill in the output types which are not written out.

    A type-preserving instruction takes the type of its operands, and the IR
    does not have to define a variable above its uses, so types are
    propagated until every output has one. Definitions which only depend on
    each other (a loop through a phi) fall back to the default integer type.
    """
    pending = []
    for stmt in statements:
        if stmt.output is None:
            continue
        if stmt.type is None:
            pending.append(stmt)
        else:
            fn.register_variable(stmt.output, stmt.type)

    while len(pending) > 0:
        ready = [stmt for stmt in pending if _operand_types_known(fn, stmt)]
        if len(ready) == 0:
            ready = [
                stmt
                for stmt in pending
                if any(typ is not None for typ in _operand_types(fn, stmt))
            ]
        if len(ready) == 0:
            ready = pending[:1]

        for stmt in ready:
            stmt.type = fn.infer_type(stmt.opcode, stmt.operands)
            fn.register_variable(stmt.output, stmt.type)

        pending = [stmt for stmt in pending if stmt.type is None]


def _operand_types(fn: IRFunction, stmt: "_Statement") -> list[Optional[IRType]]:
    return [
        fn.get_operand_type(op) for op in stmt.operands if isinstance(op, (IRVariable, IRGlobalRef))
    ]


def _operand_types_known(fn: IRFunction, stmt: "_Statement") -> bool:
    if stmt.opcode not in TYPE_PRESERVING_INSTRUCTIONS:
        return True
    return all(typ is not None for typ in _operand_types(fn, stmt))


def _unescape(s: str) -> str:
    """
    Unescape the escaped string. This is the inverse of `IRLabel.__repr__()`.
    """
    if s.startswith('"'):
        return json.loads(s)
    return s


class _Name(str):
    """A name together with the token it was parsed from (for error locations)."""

    line: Optional[int]
    column: Optional[int]

    def __new__(cls, value: str, token: Token):
        ret = super().__new__(cls, value)
        ret.line = token.line
        ret.column = token.column
        return ret


class _GlobalDef:
    def __init__(self, name: _Name, typ: IRType, initializer: Optional[int]) -> None:
        self.name = name
        self.type = typ
        self.initializer = initializer


class _FunctionDef:
    def __init__(self, name: _Name, params: list, items: list) -> None:
        self.name = name
        self.params = params
        self.items = items


class _LabelDecl:
    """Represents a block declaration in the parse tree."""

    def __init__(self, label: _Name) -> None:
        self.label = label


class _Statement:
    def __init__(
        self,
        opcode: str,
        operands: list[IROperand],
        output: Optional[IRVariable],
        typ: Optional[IRType],
        line: Optional[int],
    ) -> None:
        self.opcode = opcode
        self.operands = operands
        self.output = output
        self.type = typ
        self.line = line


class IRTransformer(Transformer):
    def __init__(self, source: str) -> None:
        super().__init__()
        self.source = source

    def _error(self, msg: str, line: Optional[int] = None, column: Optional[int] = None):
        if line is None:
            return ParseException(msg)
        col_offset = None if column is None else column - 1
        return ParseException(msg, source=(self.source, line, col_offset))

    def start(self, children) -> IRContext:
        ctx = IRContext()

        # globals are visible from every function regardless of where they
        # are declared, so add them before building any function
        for child in children:
            if not isinstance(child, _GlobalDef):
                continue
            if child.name in ctx.globals:
                raise self._error(f"duplicate global @{child.name}", child.name.line)
            ctx.add_global(str(child.name), child.type, child.initializer)

        for child in children:
            if isinstance(child, _FunctionDef):
                self._build_function(ctx, child)

        return ctx

    def _build_function(self, ctx: IRContext, fn_def: _FunctionDef) -> IRFunction:
        if IRLabel(fn_def.name) in ctx.functions:
            raise self._error(f"duplicate function {fn_def.name}", fn_def.name.line)

        fn = ctx.create_function(str(fn_def.name))
        fn.clear_basic_blocks()

        for var, typ in fn_def.params:
            if fn.get_param_by_name(var) is not None:
                raise self._error(f"duplicate parameter {var} in {fn_def.name}", var.line)
            fn.add_parameter(str(var), typ)

        # reconstruct blocks from flat list of labels and instructions.
        # the grammar parses labels and statements as a flat sequence,
        # so we need to group instructions by their preceding label.
        # each label starts a new block that contains all instructions
        # until the next label or end of function.
        bb: Optional[IRBasicBlock] = None
        statements: list[tuple[IRBasicBlock, _Statement]] = []
        for item in fn_def.items:
            if isinstance(item, _LabelDecl):
                if fn.has_basic_block(item.label):
                    raise self._error(
                        f"duplicate basic block {item.label} in {fn_def.name}",
                        item.label.line,
                        item.label.column,
                    )
                bb = IRBasicBlock(IRLabel(str(item.label)), fn)
                fn.append_basic_block(bb)
                continue

            assert isinstance(item, _Statement)  # help mypy
            if bb is None:
                raise self._error("instruction found before any label declaration", item.line)
            statements.append((bb, item))

        if fn.num_basic_blocks == 0:
            raise self._error(f"function {fn_def.name} has no basic blocks", fn_def.name.line)

        # labels can only be resolved once every block of the function exists
        for _, stmt in statements:
            stmt.operands = [_resolve_ref(ctx, fn, op) for op in stmt.operands]

        _infer_types(fn, [stmt for _, stmt in statements])

        for bb, stmt in statements:
            inst = IRInstruction(stmt.opcode, stmt.operands, stmt.output, stmt.type)
            # no terminator check here; unterminated blocks are reported
            # by check_ir so that all of them can be listed at once
            bb.instructions.append(inst)
            inst.parent = bb

        _set_last_var(fn)
        return fn

    def global_def(self, children) -> _GlobalDef:
        name, typ, initializer = children
        init_value = None if initializer is None else initializer.value
        return _GlobalDef(name, typ, init_value)

    def function(self, children) -> _FunctionDef:
        name, *rest = children
        # optional param list: lark emits a single None when it is absent
        params = [c for c in rest if isinstance(c, tuple)]
        items = [c for c in rest if isinstance(c, (_LabelDecl, _Statement))]
        return _FunctionDef(name, params, items)

    def param(self, children) -> tuple[IRVariable, IRType]:
        var, typ = children
        return var, typ

    def label_decl(self, children) -> _LabelDecl:
        return _LabelDecl(children[0])

    def statement(self, children) -> _Statement:
        return children[0]

    def assignment(self, children) -> _Statement:
        to, typ, value = children
        line = getattr(to, "line", None)
        if isinstance(value, _Statement):
            if value.opcode in NO_OUTPUT_INSTRUCTIONS:
                raise self._error(f"`{value.opcode}` does not produce a value", line)
            value.output = to
            value.type = typ
            return value
        if isinstance(value, IROperand):
            return _Statement("assign", [value], to, typ, line)
        raise TypeError(f"Unexpected value {value} of type {type(value)}")

    def instruction(self, children) -> _Statement:
        opcode_token, *operands = children
        # an instruction without operands yields a single None placeholder
        operands = [op for op in operands if op is not None]
        return _Statement(str(opcode_token), operands, None, None, opcode_token.line)

    def label_ref(self, children) -> IRLabel:
        return IRLabel(str(children[0]))

    def name(self, children) -> _Name:
        token = children[0]
        value = _unescape(str(token))
        if len(value) == 0:
            raise self._error("empty name", token.line, token.column)
        return _Name(value, token)

    def type(self, children) -> IRType:
        token = children[0]
        try:
            return parse_type(str(token))
        except RivetException as e:
            raise self._error(e.message, token.line, token.column) from e

    def VAR_IDENT(self, token) -> IRVariable:
        var = IRVariable(str(token))
        var.line = token.line  # type: ignore[attr-defined]
        return var

    def CONST(self, val) -> IRLiteral:
        if str(val).startswith("0x"):
            return IRLiteral(int(val, 16))
        return IRLiteral(int(val))


def parse_ir(source: str) -> IRContext:
    """
    Parse textual IR into an IRContext.

    Raises ParseException on malformed input.
    """
    try:
        tree = IR_PARSER.parse(source)
    except UnexpectedInput as e:
        col_offset = None if e.column is None or e.column < 1 else e.column - 1
        raise ParseException("invalid syntax", source=(source, e.line, col_offset)) from e

    try:
        ctx = IRTransformer(source).transform(tree)
    except VisitError as e:
        # lark wraps exceptions raised from transformer callbacks
        if isinstance(e.orig_exc, RivetException):
            raise e.orig_exc from None
        raise

    assert isinstance(ctx, IRContext)  # help mypy
    return ctx
