"""Error taxonomy for the covariate modeling pipeline.

Fatal errors (MissingDataError, EmptyClusterError, InsufficientDataError) abort
the run before any output is written. FormulaFitError is recovered per formula
by the model search. Undefined statistics are not exceptions: they travel as
NaN.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

# Sentinel for correlations / distances that cannot be computed
UNDEFINED = float("nan")


class AnalysisError(Exception):
    """Base class for all pipeline errors."""


class MissingDataError(AnalysisError):
    """A required column is absent from an input table."""

    def __init__(
        self,
        column: str,
        source: Optional[str] = None,
        suggestions: Sequence[str] = (),
    ):
        self.column = column
        self.source = source
        self.suggestions = list(suggestions)
        where = f" in {source}" if source else ""
        msg = f"Required column '{column}' not found{where}"
        if self.suggestions:
            msg += f" (did you mean: {', '.join(self.suggestions)}?)"
        super().__init__(msg)


class FormulaFitError(AnalysisError):
    """A single candidate formula could not be fitted."""

    def __init__(self, formula: str, reason: str):
        self.formula = formula
        self.reason = reason
        super().__init__(f"Could not fit '{formula}': {reason}")


class DataInsufficientError(FormulaFitError):
    """Too little non-missing training data for a formula."""


class EmptyClusterError(AnalysisError):
    """A cluster from the dendrogram cut has no covariates."""

    def __init__(self, cluster_ids: Iterable[int]):
        self.cluster_ids = sorted(cluster_ids)
        super().__init__(
            f"Clusters with no covariates: {self.cluster_ids}; "
            "cannot build candidate formulas"
        )


class InsufficientDataError(AnalysisError):
    """The run as a whole has too little usable data to produce a model."""
