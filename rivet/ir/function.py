from __future__ import annotations

import textwrap
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

from rivet.ir.basicblock import (
    IRBasicBlock,
    IRGlobalRef,
    IRLabel,
    IROperand,
    IRVariable,
    infer_output_type,
)
from rivet.ir.types import IRType

if TYPE_CHECKING:
    from rivet.ir.context import IRContext


@dataclass(frozen=True, eq=False)
class IRParameter:
    """
    A formal parameter of a function. Parameters are values visible from the
    function entry onward; they compare by identity.
    """

    name: str
    type: IRType
    index: int
    func_var: IRVariable

    @property
    def value_name(self) -> str:
        return self.func_var.name

    def __repr__(self) -> str:
        return f"{self.func_var}: {self.type}"


class IRFunction:
    """
    Function that contains basic blocks.
    """

    name: IRLabel  # symbol name
    ctx: IRContext
    args: list[IRParameter]
    last_variable: int
    _basic_block_dict: dict[str, IRBasicBlock]
    _var_types: dict[IRVariable, IRType]

    def __init__(self, name: IRLabel, ctx: IRContext = None):
        self.ctx = ctx  # type: ignore
        self.name = name
        self.args = []
        self._basic_block_dict = {}
        self._var_types = {}

        self.last_variable = 0

        self.append_basic_block(IRBasicBlock(name, self))

    @property
    def entry(self) -> IRBasicBlock:
        return next(self.get_basic_blocks())

    def append_basic_block(self, bb: IRBasicBlock):
        """
        Append basic block to function.
        """
        assert isinstance(bb, IRBasicBlock), bb
        assert bb.label.name not in self._basic_block_dict, bb.label
        self._basic_block_dict[bb.label.name] = bb

    def has_basic_block(self, label: str) -> bool:
        return label in self._basic_block_dict

    def get_basic_block(self, label: str) -> IRBasicBlock:
        """
        Get basic block by label.
        """
        return self._basic_block_dict[label]

    def clear_basic_blocks(self):
        self._basic_block_dict.clear()

    def get_basic_blocks(self) -> Iterator[IRBasicBlock]:
        """
        Get an iterator over this function's basic blocks
        """
        return iter(self._basic_block_dict.values())

    @property
    def num_basic_blocks(self) -> int:
        return len(self._basic_block_dict)

    def get_next_variable(self) -> IRVariable:
        self.last_variable += 1
        return IRVariable(f"%{self.last_variable}")

    def add_parameter(self, name: str, typ: IRType) -> IRParameter:
        var = IRVariable(name)
        assert self.get_param_by_name(var) is None, f"duplicate parameter {var}"
        param = IRParameter(var.plain_name, typ, len(self.args), var)
        self.args.append(param)
        self.register_variable(var, typ)
        return param

    def get_param_by_name(self, var: IRVariable | str) -> Optional[IRParameter]:
        if isinstance(var, str):
            var = IRVariable(var)
        for param in self.args:
            if param.func_var == var:
                return param
        return None

    def register_variable(self, var: IRVariable, typ: IRType) -> None:
        self._var_types[var] = typ

    def get_variable_type(self, var: IRVariable) -> Optional[IRType]:
        """
        Type of the value named by `var`, or None if `var` is not (yet)
        defined in this function.
        """
        return self._var_types.get(var)

    def get_operand_type(self, op: IROperand) -> Optional[IRType]:
        if isinstance(op, IRVariable):
            return self.get_variable_type(op)
        if isinstance(op, IRGlobalRef):
            return self.ctx.get_global(op.name).type
        return None

    def infer_type(self, opcode: str, operands: list[IROperand]) -> IRType:
        operand_types = [
            self.get_operand_type(op)
            for op in operands
            if isinstance(op, (IRVariable, IRGlobalRef))
        ]
        return infer_output_type(opcode, operand_types)

    def _signature(self) -> str:
        params = ", ".join(repr(param) for param in self.args)
        return f"{self.name}({params})"

    def __repr__(self) -> str:
        ret = f"function {self._signature()} {{\n"
        for bb in self.get_basic_blocks():
            bb_str = textwrap.indent(str(bb), "  ")
            ret += f"{bb_str}\n"
        ret = ret.strip() + "\n}"
        return ret
