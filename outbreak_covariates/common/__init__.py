"""Shared error taxonomy."""

from outbreak_covariates.common.errors import (
    AnalysisError,
    MissingDataError,
    FormulaFitError,
    DataInsufficientError,
    EmptyClusterError,
    InsufficientDataError,
    UNDEFINED,
)

__all__ = [
    'AnalysisError',
    'MissingDataError',
    'FormulaFitError',
    'DataInsufficientError',
    'EmptyClusterError',
    'InsufficientDataError',
    'UNDEFINED',
]
