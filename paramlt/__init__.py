from ._config import get_strict_sparse, set_strict_sparse
from ._validation import BlockStructureError, DimensionMismatch
from .api import FactorSet, stack_parameters, unstack_parameters
from .lowertri import LowerTriangularFactor, factor_for_term, lower_bounds, nlower
from .ops import lscale, rscale, tscale
from .targets import Diagonal, HBlkDiag, TargetKind, classify_target
from .views import StridedView

__all__ = [
    "BlockStructureError",
    "Diagonal",
    "DimensionMismatch",
    "FactorSet",
    "HBlkDiag",
    "LowerTriangularFactor",
    "StridedView",
    "TargetKind",
    "classify_target",
    "factor_for_term",
    "get_strict_sparse",
    "lower_bounds",
    "lscale",
    "nlower",
    "rscale",
    "set_strict_sparse",
    "stack_parameters",
    "tscale",
    "unstack_parameters",
]
