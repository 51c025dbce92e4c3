from __future__ import annotations

import json
import re
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Iterator, Optional, Union

from rivet.ir.types import BOOL, F64, PTR, IRType, default_int_type

if TYPE_CHECKING:
    from rivet.ir.function import IRFunction

# instructions which can terminate a basic block
BB_TERMINATORS = frozenset(["jmp", "djmp", "jnz", "ret", "stop", "unreachable"])

NO_OUTPUT_INSTRUCTIONS = frozenset(["store", "ret", "stop", "unreachable", "jmp", "djmp", "jnz", "nop"])

COMPARATOR_INSTRUCTIONS = frozenset(
    ["eq", "ne", "lt", "gt", "le", "ge", "slt", "sgt", "sle", "sge", "iszero", "fcmp"]
)

POINTER_INSTRUCTIONS = frozenset(["alloca", "gep", "inttoptr"])

FLOAT_INSTRUCTIONS = frozenset(["fadd", "fsub", "fmul", "fdiv", "frem", "fneg", "sitofp", "uitofp"])

# the output has the type of the (first) variable operand
TYPE_PRESERVING_INSTRUCTIONS = frozenset(
    [
        "assign",
        "phi",
        "select",
        "add",
        "sub",
        "mul",
        "div",
        "sdiv",
        "mod",
        "smod",
        "and",
        "or",
        "xor",
        "not",
        "shl",
        "shr",
        "sar",
    ]
)

ir_printer = ContextVar("ir_printer", default=None)

_IS_IDENTIFIER = re.compile("[0-9a-zA-Z_.]*")


def _escape_name(name: str) -> str:
    if _IS_IDENTIFIER.fullmatch(name):
        return name
    return json.dumps(name)


class IROperand:
    """
    IROperand represents an IR operand. An operand is anything that can be
    operated by instructions. It can be a literal, a variable, or a label.
    """

    value: Any
    _hash: Optional[int] = None

    def __init__(self, value: Any) -> None:
        self.value = value
        self._hash = None

    @property
    def name(self) -> str:
        return self.value

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(self.value)
        return self._hash

    def __eq__(self, other) -> bool:
        if not isinstance(other, type(self)):
            return False
        return self.value == other.value

    def __repr__(self) -> str:
        return str(self.value)


class IRLiteral(IROperand):
    """
    IRLiteral represents an integer literal in IR
    """

    value: int

    def __init__(self, value: int) -> None:
        assert isinstance(value, int), value
        super().__init__(value)

    def __repr__(self) -> str:
        if self.value < 1024:
            return str(self.value)
        return f"0x{self.value:x}"


class IRVariable(IROperand):
    """
    IRVariable represents a variable in IR. A variable is a string that starts with a %.
    """

    def __init__(self, name: str) -> None:
        assert isinstance(name, str)
        if not name.startswith("%"):
            name = f"%{name}"
        super().__init__(name)

    @property
    def plain_name(self) -> str:
        return self.name.strip("%")


class IRLabel(IROperand):
    """
    IRLabel represents a label in IR, the name of a basic block or a function.
    """

    value: str

    def __init__(self, value: str) -> None:
        assert isinstance(value, str), f"not a str: {value} ({type(value)})"
        assert len(value) > 0
        super().__init__(value)

    def __repr__(self):
        return _escape_name(self.value)


class IRGlobalRef(IROperand):
    """
    IRGlobalRef is an operand naming a global of the enclosing context, written
    `@name` like a label. It is never a jump target.
    """

    value: str

    def __init__(self, name: str) -> None:
        assert isinstance(name, str), f"not a str: {name} ({type(name)})"
        super().__init__(name)

    def __repr__(self):
        return f"@{_escape_name(self.value)}"


def infer_output_type(opcode: str, operand_types: list[Optional[IRType]]) -> IRType:
    """
    Compute the type of an instruction output which was not given an
    explicit type. `operand_types` holds the types of the variable operands,
    or None where the type is not known.
    """
    if opcode in COMPARATOR_INSTRUCTIONS:
        return BOOL
    if opcode in POINTER_INSTRUCTIONS:
        return PTR
    if opcode in FLOAT_INSTRUCTIONS:
        return F64
    if opcode in TYPE_PRESERVING_INSTRUCTIONS:
        for typ in operand_types:
            if typ is not None:
                return typ
    return default_int_type()


class IRInstruction:
    """
    IRInstruction represents an instruction in IR. Each instruction has an opcode,
    operands, and an optional typed output. For example, the following IR instruction:
        %1: i32 = add %0, 1
    has opcode "add", operands ["%0", "1"], output "%1" and type i32.

    An instruction with an output is also a value: it is what the output
    variable names. Instructions hash and compare by identity.
    """

    opcode: str
    operands: list[IROperand]
    output: Optional[IRVariable]
    type: Optional[IRType]
    parent: IRBasicBlock

    def __init__(
        self,
        opcode: str,
        operands: list[IROperand] | Iterator[IROperand],
        output: Optional[IRVariable] = None,
        type: Optional[IRType] = None,
    ):
        assert isinstance(opcode, str), "opcode must be an str"
        assert isinstance(operands, list | Iterator), "operands must be a list"
        assert (output is None) == (type is None), "output and type go together"
        self.opcode = opcode
        self.operands = list(operands)  # in case we get an iterator
        self.output = output
        self.type = type

    @property
    def is_bb_terminator(self) -> bool:
        return self.opcode in BB_TERMINATORS

    @property
    def value_name(self) -> str:
        assert self.output is not None, self
        return self.output.name

    def get_label_operands(self) -> Iterator[IRLabel]:
        """
        Get all labels in instruction.
        """
        return (op for op in self.operands if isinstance(op, IRLabel))

    def get_input_variables(self) -> Iterator[IRVariable]:
        """
        Get all input operands for instruction.
        """
        return (op for op in self.operands if isinstance(op, IRVariable))

    def __repr__(self) -> str:
        s = ""
        if self.output:
            s += f"{self.output}: {self.type} = "
        opcode = f"{self.opcode} " if self.opcode != "assign" else ""
        s += opcode
        s += ", ".join([(f"@{op}" if isinstance(op, IRLabel) else str(op)) for op in self.operands])
        s = s.strip()

        return s


def _ir_operand_from_value(val: Any) -> IROperand:
    if isinstance(val, IROperand):
        return val

    assert isinstance(val, int), val
    return IRLiteral(val)


class IRBasicBlock:
    """
    IRBasicBlock represents a basic block in IR. Each basic block has a label and
    a list of instructions, while belonging to a function.

    The following IR code:
        %1 = add %0, 1
        %2 = mul %1, 2
    is represented as:
        bb = IRBasicBlock(IRLabel("bb"), function)
        r1 = bb.append_instruction("add", IRVariable("%0"), 1)
        r2 = bb.append_instruction("mul", r1, 2)

    The label of a basic block is used to refer to it from other basic blocks
    in order to branch to it.

    The parent of a basic block is the function it belongs to.

    The instructions of a basic block are executed sequentially, and the last
    instruction of a basic block is always a terminator instruction, which is
    used to branch to other basic blocks.
    """

    label: IRLabel
    parent: IRFunction
    instructions: list[IRInstruction]

    def __init__(self, label: IRLabel, parent: IRFunction) -> None:
        assert isinstance(label, IRLabel), "label must be an IRLabel"
        self.label = label
        self.parent = parent
        self.instructions = []

    @property
    def out_bbs(self) -> list[IRBasicBlock]:
        if not self.is_terminated:
            return []
        out_labels = self.last_instruction.get_label_operands()
        fn = self.parent
        return [fn.get_basic_block(label.name) for label in out_labels]

    @property
    def last_instruction(self) -> IRInstruction:
        return self.instructions[-1]

    def append_instruction(
        self,
        opcode: str,
        *args: Union[IROperand, int],
        ret: Optional[IRVariable] = None,
        type: Optional[IRType] = None,
    ) -> Optional[IRVariable]:
        """
        Append an instruction to the basic block

        Returns the output variable if the instruction supports one
        """
        assert not self.is_terminated, self

        if ret is None and opcode not in NO_OUTPUT_INSTRUCTIONS:
            ret = self.parent.get_next_variable()

        # Wrap raw integers in IRLiterals
        inst_args = [_ir_operand_from_value(arg) for arg in args]

        if ret is not None and type is None:
            type = self.parent.infer_type(opcode, inst_args)

        inst = IRInstruction(opcode, inst_args, ret, type)
        self.insert_instruction(inst)
        return ret

    def insert_instruction(self, instruction: IRInstruction, index: Optional[int] = None) -> None:
        assert isinstance(instruction, IRInstruction), "instruction must be an IRInstruction"

        if index is None:
            assert not self.is_terminated, (self, instruction)
            index = len(self.instructions)
        instruction.parent = self
        self.instructions.insert(index, instruction)
        if instruction.output is not None:
            self.parent.register_variable(instruction.output, instruction.type)

    @property
    def is_terminated(self) -> bool:
        """
        Check if the basic block is terminal, i.e. the last instruction is a terminator.
        """
        # it's ok to return False here, since we use this to check
        # if we can/need to append instructions to the basic block.
        if len(self.instructions) == 0:
            return False
        return self.instructions[-1].is_bb_terminator

    def __repr__(self) -> str:
        printer = ir_printer.get()

        s = f"{repr(self.label)}:\n"
        if printer and hasattr(printer, "_pre_block"):
            s += printer._pre_block(self)
        for inst in self.instructions:
            if printer and hasattr(printer, "_pre_instruction"):
                s += printer._pre_instruction(inst)
            s += f"    {str(inst).strip()}"
            if printer and hasattr(printer, "_post_instruction"):
                s += printer._post_instruction(inst)
            s += "\n"

        return s


class IRPrinter:
    """
    Hooks for decorating the textual form of basic blocks. Install an
    instance through the `ir_printer` context variable.
    """

    def _pre_block(self, bb: IRBasicBlock) -> str:
        return ""

    def _pre_instruction(self, inst: IRInstruction) -> str:
        return ""

    def _post_instruction(self, inst: IRInstruction) -> str:
        return ""
