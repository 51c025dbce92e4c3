from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from rivet.ir.basicblock import IRLabel
from rivet.ir.function import IRFunction
from rivet.ir.types import IRType


@dataclass(frozen=True, eq=False)
class IRGlobal:
    """
    A module-level value, visible from every basic block of every function.
    Globals compare by identity.
    """

    name: str
    type: IRType
    initializer: Optional[int] = None

    @property
    def value_name(self) -> str:
        return f"@{self.name}"

    def __repr__(self) -> str:
        s = f"{self.value_name}: {self.type}"
        if self.initializer is not None:
            s += f" = {self.initializer}"
        return s


class IRContext:
    functions: dict[IRLabel, IRFunction]
    globals: dict[str, IRGlobal]
    entry_function: Optional[IRFunction]

    def __init__(self) -> None:
        self.functions = {}
        self.globals = {}
        self.entry_function = None

    def add_function(self, fn: IRFunction) -> None:
        fn.ctx = self
        self.functions[fn.name] = fn

    def create_function(self, name: str) -> IRFunction:
        label = IRLabel(name)
        assert label not in self.functions, f"duplicate function {label}"
        fn = IRFunction(label, self)
        self.add_function(fn)
        if self.entry_function is None:
            self.entry_function = fn
        return fn

    def get_function(self, name: IRLabel) -> IRFunction:
        if name in self.functions:
            return self.functions[name]
        raise Exception(f"Function {name} not found in context")

    def get_functions(self) -> Iterator[IRFunction]:
        return iter(self.functions.values())

    def add_global(self, name: str, typ: IRType, initializer: Optional[int] = None) -> IRGlobal:
        assert name not in self.globals, f"duplicate global @{name}"
        glob = IRGlobal(name, typ, initializer)
        self.globals[name] = glob
        return glob

    def get_global(self, name: str) -> IRGlobal:
        return self.globals[name]

    def get_globals(self) -> Iterator[IRGlobal]:
        return iter(self.globals.values())

    def __repr__(self) -> str:
        s = []
        for glob in self.globals.values():
            s.append(f"global {glob!r}")
        if len(self.globals) > 0:
            s.append("")

        for fn in self.functions.values():
            s.append(IRFunction.__repr__(fn))
            s.append("")

        return "\n".join(s)
