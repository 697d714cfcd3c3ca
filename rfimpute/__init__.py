# rfimpute - iterative random-forest imputation for mixed-type tables
# missForest-style loop with OOB error estimates, no one-hot expansion

from .errors import DegenerateColumnError, FrozenTableError, ImputationError, InsufficientDataError
from .imputer import ImputeConfig, MissForestImputer, RunResult, TerminatedBy
from .parallel import impute_datasets
from .table import ColumnKind, TypedTable

__version__ = "0.1.0"
__all__ = [
    "MissForestImputer",
    "ImputeConfig",
    "RunResult",
    "TerminatedBy",
    "TypedTable",
    "ColumnKind",
    "impute_datasets",
    "ImputationError",
    "DegenerateColumnError",
    "InsufficientDataError",
    "FrozenTableError",
]
