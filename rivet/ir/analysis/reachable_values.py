from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from typing import Union

from rivet.exceptions import UnreachedBlock
from rivet.ir.analysis import DefinedValuesAnalysis, DominatorTreeAnalysis, IRAnalysis
from rivet.ir.analysis.defined_values import DefinitionSet, TypeFilter
from rivet.ir.analysis.dominators import DominatorTreeView
from rivet.ir.basicblock import IRBasicBlock, IRInstruction
from rivet.ir.context import IRGlobal
from rivet.ir.function import IRFunction, IRParameter
from rivet.ir.types import is_tracked_type
from rivet.utils import OrderedSet

Value = Union[IRGlobal, IRParameter, IRInstruction]


class ReachableValues(Mapping):
    """
    Result of the reachable values analysis: for every basic block spanned
    by the dominator tree, the values available on every path reaching it.

    The mapping is read-only. Looking up a block which the analysis never
    reached raises `UnreachedBlock`; this is different from a block whose
    set is empty. Iteration follows the order in which blocks were visited
    and is only meant for reporting.
    """

    _sets: dict[IRBasicBlock, OrderedSet[Value]]

    def __init__(self, sets: dict[IRBasicBlock, OrderedSet[Value]]):
        self._sets = sets

    def __getitem__(self, bb: IRBasicBlock) -> frozenset[Value]:
        if bb not in self._sets:
            raise UnreachedBlock(bb)
        return frozenset(self._sets[bb])

    def __contains__(self, bb) -> bool:
        return bb in self._sets

    def __iter__(self) -> Iterator[IRBasicBlock]:
        return iter(self._sets)

    def __len__(self) -> int:
        return len(self._sets)

    def is_reached(self, bb: IRBasicBlock) -> bool:
        return bb in self._sets

    def ordered(self, bb: IRBasicBlock) -> tuple[Value, ...]:
        """
        The values reachable from `bb`, in the order they were introduced
        (globals, parameters, then definitions from the top of the
        dominator tree down).
        """
        if bb not in self._sets:
            raise UnreachedBlock(bb)
        return tuple(self._sets[bb])

    def __repr__(self) -> str:
        items = ", ".join(f"{bb.label}: {self._sets[bb]!r}" for bb in self._sets)
        return f"ReachableValues({{{items}}})"


def compute_reachable_values(
    defined: DefinitionSet,
    dom_tree: DominatorTreeView,
    params: Iterable[IRParameter],
    globals_: Iterable[IRGlobal],
    tracked: TypeFilter = is_tracked_type,
) -> ReachableValues:
    """
    Propagate values down the dominator tree.

    The root (the function entry) starts with the tracked globals and
    parameters. Every other block receives the values reachable from its
    immediate dominator plus the values defined in the immediate dominator.
    Values defined in a block are therefore never reachable from the block
    itself, only from the blocks it dominates.
    """
    root = dom_tree.root
    reachable: dict[IRBasicBlock, OrderedSet[Value]] = {}

    # the entry has no dominator to inherit from. its set is seeded from
    # the function inputs and nothing else.
    seed: OrderedSet[Value] = OrderedSet()
    for glob in globals_:
        if tracked(glob.type):
            seed.add(glob)
    for param in params:
        if tracked(param.type):
            seed.add(param)
    reachable[root] = seed

    # a block is popped only after its parent has pushed it, so its set is
    # final by the time it is handed down to its own children
    visited: list[IRBasicBlock] = []
    worklist = deque([root])
    while len(worklist) > 0:
        parent = worklist.pop()
        visited.append(parent)

        parent_defs = defined.get(parent, ())
        parent_values = reachable[parent]

        for child in dom_tree.children(parent):
            child_values = reachable.setdefault(child, OrderedSet())
            child_values.update(parent_values)
            child_values.update(parent_defs)
            worklist.append(child)

    return ReachableValues({bb: reachable[bb] for bb in visited})


def function_globals(fn: IRFunction) -> Iterable[IRGlobal]:
    if fn.ctx is None:
        return ()
    return fn.ctx.get_globals()


class ReachableValuesAnalysis(IRAnalysis):
    """
    Compute, for each basic block, the integer values which are available
    on every path from the function entry to the block: globals, parameters
    and the outputs of instructions in the blocks which dominate it.
    """

    dom: DominatorTreeAnalysis
    defined: DefinitionSet
    result: ReachableValues

    def analyze(self):
        self.dom = self.analyses_cache.request_analysis(DominatorTreeAnalysis)
        self.defined = self.analyses_cache.request_analysis(DefinedValuesAnalysis).defined

        fn = self.function
        self.result = compute_reachable_values(
            self.defined, self.dom, fn.args, function_globals(fn)
        )

    def reachable_values(self, bb: IRBasicBlock) -> frozenset[Value]:
        return self.result[bb]

    def unreached_blocks(self) -> list[IRBasicBlock]:
        return [bb for bb in self.function.get_basic_blocks() if bb not in self.result]

    def invalidate(self):
        del self.result
