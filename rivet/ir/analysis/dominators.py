from typing import Iterable, Iterator, Optional, Protocol

from rivet.exceptions import AnalysisPanic
from rivet.ir.analysis import CFGAnalysis, IRAnalysis
from rivet.ir.basicblock import IRBasicBlock
from rivet.ir.function import IRFunction
from rivet.utils import OrderedSet


class DominatorTreeView(Protocol):
    """
    Read-only view of a dominator tree: a root (the function entry) and,
    for every node, the blocks it immediately dominates. The parent of a
    block strictly dominates it.
    """

    @property
    def root(self) -> IRBasicBlock: ...

    def children(self, bb: IRBasicBlock) -> Iterable[IRBasicBlock]: ...


class DominatorTreeAnalysis(IRAnalysis):
    """
    Dominator tree implementation. This class computes the dominator tree of a
    function and provides methods to query the tree. Dominator sets are
    computed with the iterative data flow algorithm; immediate dominators are
    then read off the dominator sets using the DFS post order.

    Blocks which are not reachable from the function entry are not part of
    the tree.
    """

    fn: IRFunction
    entry_block: IRBasicBlock
    dominators: dict[IRBasicBlock, OrderedSet[IRBasicBlock]]
    immediate_dominators: dict[IRBasicBlock, Optional[IRBasicBlock]]
    dominated: dict[IRBasicBlock, OrderedSet[IRBasicBlock]]
    dominator_frontiers: dict[IRBasicBlock, OrderedSet[IRBasicBlock]]
    cfg: CFGAnalysis

    def analyze(self):
        """
        Compute the dominator tree.
        """
        self.fn = self.function
        self.entry_block = self.fn.entry
        self.dominators = {}
        self.immediate_dominators = {}
        self.dominated = {}
        self.dominator_frontiers = {}

        self.cfg = self.analyses_cache.request_analysis(CFGAnalysis)

        self.cfg_post_walk = list(self.cfg.dfs_post_walk)
        self.cfg_post_order = {bb: idx for idx, bb in enumerate(self.cfg_post_walk)}

        self._compute_dominators()
        self._compute_idoms()
        self._compute_df()

    @property
    def root(self) -> IRBasicBlock:
        return self.entry_block

    def children(self, bb: IRBasicBlock) -> OrderedSet[IRBasicBlock]:
        """
        Blocks immediately dominated by `bb`.
        """
        return self.dominated[bb]

    def in_tree(self, bb: IRBasicBlock) -> bool:
        return bb in self.dominated

    def _reachable_preds(self, bb: IRBasicBlock) -> list[IRBasicBlock]:
        # edges out of unreachable blocks do not constrain dominance
        return [pred for pred in self.cfg.cfg_in(bb) if pred in self.cfg_post_order]

    def get_all_dominated_blocks(self, bb: IRBasicBlock) -> OrderedSet[IRBasicBlock]:
        result: OrderedSet[IRBasicBlock] = OrderedSet()

        worklist = [bb]
        while len(worklist) > 0:
            block = worklist.pop()
            for dominated_block in self.dominated.get(block, ()):
                if dominated_block not in result:
                    result.add(dominated_block)
                    worklist.append(dominated_block)

        return result

    def dominates(self, dom, sub):
        """
        Check if `dom` dominates `sub`.
        """
        return dom in self.dominators[sub]

    def immediate_dominator(self, bb):
        """
        Return the immediate dominator of a basic block.
        """
        return self.immediate_dominators.get(bb)

    def _compute_dominators(self):
        """
        Compute dominators
        """
        basic_blocks = self.cfg_post_walk
        self.dominators = {bb: OrderedSet(basic_blocks) for bb in basic_blocks}
        self.dominators[self.entry_block] = OrderedSet([self.entry_block])
        changed = True
        count = len(basic_blocks) ** 2 + 1
        while changed:
            count -= 1
            if count < 0:
                raise AnalysisPanic("Dominators computation failed to converge")
            changed = False
            # reverse post order, so most predecessors are final by the
            # time their successors are visited
            for bb in reversed(basic_blocks):
                if bb == self.entry_block:
                    continue
                preds = self._reachable_preds(bb)
                if len(preds) == 0:
                    continue
                new_dominators = OrderedSet.intersection(*[self.dominators[pred] for pred in preds])
                new_dominators.add(bb)
                if new_dominators != self.dominators[bb]:
                    self.dominators[bb] = new_dominators
                    changed = True

    def _compute_idoms(self):
        """
        Compute immediate dominators
        """
        self.immediate_dominators = {bb: None for bb in self.cfg_post_walk}
        for bb in self.cfg_post_walk:
            if bb == self.entry_block:
                continue
            # a strict dominator finishes after the blocks it dominates in
            # the dfs, so the closest one has the smallest post order index
            doms = sorted(self.dominators[bb], key=lambda x: self.cfg_post_order[x])
            assert doms[0] == bb, (bb, doms)
            self.immediate_dominators[bb] = doms[1]

        # iterate in reverse post order, so children are listed in the
        # order they are first reached from the entry
        self.dominated = {bb: OrderedSet() for bb in self.cfg_post_walk}
        for bb in reversed(self.cfg_post_walk):
            idom = self.immediate_dominators[bb]
            if idom is not None:
                self.dominated[idom].add(bb)

    def _compute_df(self):
        """
        Compute dominance frontier
        """
        self.dominator_frontiers = {bb: OrderedSet() for bb in self.cfg_post_walk}

        for bb in self.cfg_post_walk:
            if len(preds := self._reachable_preds(bb)) > 1:
                for pred in preds:
                    runner = pred
                    while runner != self.immediate_dominators[bb]:
                        self.dominator_frontiers[runner].add(bb)
                        runner = self.immediate_dominators[runner]

    def dominance_frontier(self, basic_blocks: list[IRBasicBlock]) -> OrderedSet[IRBasicBlock]:
        """
        Compute dominance frontier of a set of basic blocks.
        """
        df = OrderedSet[IRBasicBlock]()
        for bb in basic_blocks:
            df.update(self.dominator_frontiers[bb])
        return df

    @property
    def dom_pre_order(self) -> Iterator[IRBasicBlock]:
        """
        Pre-order traversal of the dominator tree: every block comes after
        its immediate dominator.
        """
        worklist = [self.entry_block]
        while len(worklist) > 0:
            bb = worklist.pop()
            yield bb
            # reversed, so that children are yielded in order
            worklist.extend(reversed(self.dominated[bb]))

    def invalidate(self):
        from rivet.ir.analysis import ReachableValuesAnalysis

        del self.dominators
        del self.immediate_dominators
        del self.dominated
        del self.dominator_frontiers

        self.analyses_cache.invalidate_analysis(ReachableValuesAnalysis)


class StaticDominatorTree:
    """
    A dominator tree given explicitly as a parent map, for callers that
    compute dominance themselves.

        tree = StaticDominatorTree(entry, {b1: entry, b2: entry, b3: b1})
    """

    _root: IRBasicBlock
    _children: dict[IRBasicBlock, list[IRBasicBlock]]

    def __init__(self, root: IRBasicBlock, parents: dict[IRBasicBlock, IRBasicBlock]):
        assert root not in parents, "the root has no parent"
        self._root = root
        self._children = {root: []}
        for child in parents:
            self._children.setdefault(child, [])
        for child, parent in parents.items():
            assert parent in self._children, f"parent {parent.label} is not in the tree"
            self._children[parent].append(child)

    @property
    def root(self) -> IRBasicBlock:
        return self._root

    def children(self, bb: IRBasicBlock) -> list[IRBasicBlock]:
        return self._children[bb]
