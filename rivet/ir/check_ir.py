from rivet.ir.basicblock import IRBasicBlock, IRInstruction, IRVariable
from rivet.ir.context import IRContext
from rivet.ir.function import IRFunction


class IRError(Exception):
    message: str


class BasicBlockNotTerminated(IRError):
    message: str = "basic block does not terminate"

    def __init__(self, basicblock):
        self.basicblock = basicblock

    def __str__(self):
        return f"basic block is not terminated:\n{self.basicblock}"


class UnknownJumpTarget(IRError):
    message: str = "jump to a basic block which does not exist"

    def __init__(self, label, inst):
        self.label = label
        self.inst = inst

    def __str__(self):
        bb = self.inst.parent
        return f"unknown jump target @{self.label}:\n  {self.inst}\n\n{bb}"


class VarNotDefined(IRError):
    message: str = "variable is used but never defined"

    def __init__(self, var, inst):
        self.var = var
        self.inst = inst

    def __str__(self):
        bb = self.inst.parent
        return f"var {self.var} not defined:\n  {self.inst}\n\n{bb}"


class DuplicateDefinition(IRError):
    message: str = "variable is defined more than once"

    def __init__(self, var, inst):
        self.var = var
        self.inst = inst

    def __str__(self):
        bb = self.inst.parent
        return f"var {self.var} is already defined:\n  {self.inst}\n\n{bb}"


def _check_jump_targets(fn: IRFunction, bb: IRBasicBlock) -> list[IRError]:
    errors: list[IRError] = []
    term = bb.last_instruction
    for label in term.get_label_operands():
        if not fn.has_basic_block(label.name):
            errors.append(UnknownJumpTarget(label=label, inst=term))
    return errors


def _handle_var_definitions(fn: IRFunction) -> list[IRError]:
    errors: list[IRError] = []

    defined: set[IRVariable] = set(param.func_var for param in fn.args)
    uses: list[tuple[IRVariable, IRInstruction]] = []

    for bb in fn.get_basic_blocks():
        for inst in bb.instructions:
            for op in inst.get_input_variables():
                uses.append((op, inst))
            if inst.output is None:
                continue
            if inst.output in defined:
                errors.append(DuplicateDefinition(var=inst.output, inst=inst))
            defined.add(inst.output)

    # the ir is not required to be in dominance order, so a use only needs
    # a definition somewhere in the function
    for var, inst in uses:
        if var not in defined:
            errors.append(VarNotDefined(var=var, inst=inst))

    return errors


def find_semantic_errors_fn(fn: IRFunction) -> list[IRError]:
    errors: list[IRError] = []

    # check that all the bbs are terminated
    for bb in fn.get_basic_blocks():
        if not bb.is_terminated:
            errors.append(BasicBlockNotTerminated(basicblock=bb))

    if len(errors) > 0:
        return errors

    # the cfg cannot be built with dangling edges
    for bb in fn.get_basic_blocks():
        errors.extend(_check_jump_targets(fn, bb))

    errors.extend(_handle_var_definitions(fn))
    return errors


def find_semantic_errors(context: IRContext) -> list[IRError]:
    errors: list[IRError] = []

    for fn in context.functions.values():
        errors.extend(find_semantic_errors_fn(fn))

    return errors


def check_ir_ctx(context: IRContext):
    errors = find_semantic_errors(context)

    if errors:
        raise ExceptionGroup("ir semantic errors", errors)
