from .analysis import IRAnalysesCache, IRAnalysis
from .cfg import CFGAnalysis
from .defined_values import DefinedValuesAnalysis
from .dominators import DominatorTreeAnalysis
from .reachable_values import ReachableValuesAnalysis
