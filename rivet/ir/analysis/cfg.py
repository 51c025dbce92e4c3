from typing import Iterator, MutableMapping
from weakref import WeakKeyDictionary

from rivet.ir.analysis import IRAnalysis
from rivet.ir.basicblock import IRBasicBlock
from rivet.utils import OrderedSet


class CFGAnalysis(IRAnalysis):
    """
    Compute control flow graph information for each basic block in the function.
    """

    _dfs: OrderedSet[IRBasicBlock]
    _cfg_in: MutableMapping[IRBasicBlock, OrderedSet[IRBasicBlock]]
    _cfg_out: MutableMapping[IRBasicBlock, OrderedSet[IRBasicBlock]]
    _reachable: MutableMapping[IRBasicBlock, bool]

    def analyze(self) -> None:
        fn = self.function

        self._dfs = OrderedSet()
        # use weak key dictionary since if a bb gets removed, it should
        # fall out of the cfg analysis.
        self._cfg_in = WeakKeyDictionary()
        self._cfg_out = WeakKeyDictionary()
        self._reachable = WeakKeyDictionary()

        for bb in fn.get_basic_blocks():
            self._cfg_in[bb] = OrderedSet()
            self._cfg_out[bb] = OrderedSet()
            self._reachable[bb] = False

        for bb in fn.get_basic_blocks():
            for next_bb in bb.out_bbs:
                self._cfg_out[bb].add(next_bb)
                self._cfg_in[next_bb].add(bb)

        self._compute_dfs_post(self.function.entry)

    def cfg_in(self, bb: IRBasicBlock) -> OrderedSet[IRBasicBlock]:
        return self._cfg_in[bb]

    def cfg_out(self, bb: IRBasicBlock) -> OrderedSet[IRBasicBlock]:
        return self._cfg_out[bb]

    def is_reachable(self, bb: IRBasicBlock) -> bool:
        return self._reachable[bb]

    def unreachable_blocks(self) -> list[IRBasicBlock]:
        return [bb for bb in self.function.get_basic_blocks() if not self._reachable[bb]]

    def _compute_dfs_post(self, entry: IRBasicBlock) -> None:
        # iterative post-order walk; deep CFGs would overflow the
        # interpreter stack with a recursive one
        self._reachable[entry] = True
        stack = [(entry, iter(self._cfg_out[entry]))]
        while len(stack) > 0:
            bb, succs = stack[-1]
            for out_bb in succs:
                if not self._reachable[out_bb]:
                    self._reachable[out_bb] = True
                    stack.append((out_bb, iter(self._cfg_out[out_bb])))
                    break
            else:
                stack.pop()
                self._dfs.add(bb)

    @property
    def dfs_post_walk(self) -> Iterator[IRBasicBlock]:
        return iter(self._dfs)

    def invalidate(self):
        from rivet.ir.analysis import DominatorTreeAnalysis

        # just in case somebody is holding onto a bad reference to this
        del self._cfg_in
        del self._cfg_out
        del self._reachable
        del self._dfs

        # dominance is derived from the cfg; dependents of the dominator
        # tree are invalidated in turn
        self.analyses_cache.invalidate_analysis(DominatorTreeAnalysis)
