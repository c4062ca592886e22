"""
Model Search

Enumerates one-covariate-per-cluster regression formulas and fits a
cross-validated random forest for each one.

- Candidates are the Cartesian product of the cluster member lists, produced
  lazily so large products are never materialized.
- Every candidate is trained on the same fixed training partition, with the
  same repeated k-fold splits, and scored on the same held-out rows.
- mtry is recomputed per formula from its own predictor count.
- A formula that cannot be fitted is logged and skipped.
"""
from __future__ import annotations

import itertools
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from outbreak_covariates.common.errors import DataInsufficientError, FormulaFitError
from outbreak_covariates.evaluation.cv import (
    TrainTestSplit,
    create_repeated_kfold_splits,
    cv_split_generator,
    prepare_train_test,
)
from outbreak_covariates.evaluation.metrics import (
    compute_regression_metrics,
    summarize_fold_metrics,
)
from outbreak_covariates.features.clustering import nonempty_clusters
from outbreak_covariates.models.random_forest import RandomForestModel, compute_mtry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateFormula:
    """Additive formula: outcome ~ cov1 + cov2 + ... (one per cluster)."""
    index: int
    outcome: str
    covariates: Tuple[str, ...]

    @property
    def n_predictors(self) -> int:
        return len(self.covariates)

    def __str__(self) -> str:
        return f"{self.outcome} ~ {' + '.join(self.covariates)}"


@dataclass
class SearchConfig:
    """Cross-validation and forest settings shared by all candidates."""
    cv_folds: int = 10
    cv_repeats: int = 3
    n_estimators: int = 500
    min_samples_leaf: int = 5
    random_state: Optional[int] = 42
    n_jobs: Optional[int] = -1
    importance_repeats: int = 10

    @classmethod
    def from_config(cls, config: Dict) -> 'SearchConfig':
        search = config.get('search', {}) or {}
        importance = config.get('importance', {}) or {}
        return cls(
            cv_folds=search.get('cv_folds', 10),
            cv_repeats=search.get('cv_repeats', 3),
            n_estimators=search.get('n_estimators', 500),
            min_samples_leaf=search.get('min_samples_leaf', 5),
            random_state=search.get('random_state', 42),
            n_jobs=search.get('n_jobs', -1),
            importance_repeats=importance.get('n_repeats', 10),
        )

    def model_config(self) -> Dict:
        return {
            'n_estimators': self.n_estimators,
            'min_samples_leaf': self.min_samples_leaf,
            'random_state': self.random_state,
            'n_jobs': self.n_jobs,
        }


@dataclass
class FittedModel:
    """A trained forest bound to one formula and its scores."""
    formula: CandidateFormula
    model: RandomForestModel
    mtry: int
    cv_metrics: Dict[str, float]
    test_metrics: Dict[str, float]
    importances: Dict[str, Dict[str, float]] = field(default_factory=dict)
    fit_seconds: float = 0.0

    @property
    def r2(self) -> float:
        return self.test_metrics['r2']

    @property
    def rmse(self) -> float:
        return self.test_metrics['rmse']

    @property
    def mae(self) -> float:
        return self.test_metrics['mae']


@dataclass
class SearchResult:
    """Fitted models in enumeration order plus the formulas that failed."""
    fitted: List[FittedModel]
    failures: List[Tuple[CandidateFormula, str]]
    n_candidates: int


def count_formulas(clusters: Mapping[int, Sequence[str]]) -> int:
    """Product of per-cluster covariate counts."""
    return math.prod(len(members) for members in clusters.values())


def enumerate_formulas(
    clusters: Mapping[int, Sequence[str]],
    outcome: str
) -> Iterator[CandidateFormula]:
    """
    Lazily yield every one-covariate-per-cluster formula.

    Clusters are taken in id order; within a cluster, members keep their
    listed order. Empty clusters are rejected up front.

    Args:
        clusters: Cluster id -> member covariates
        outcome: Outcome column name

    Yields:
        CandidateFormula with index 0, 1, 2, ...
    """
    clusters = nonempty_clusters(clusters)
    member_lists = [clusters[k] for k in sorted(clusters)]
    for i, combo in enumerate(itertools.product(*member_lists)):
        yield CandidateFormula(index=i, outcome=outcome, covariates=tuple(combo))


def _check_training_data(formula: CandidateFormula, split: TrainTestSplit, min_rows: int) -> None:
    for cov in formula.covariates:
        if cov not in split.train.columns:
            raise DataInsufficientError(str(formula), f"column '{cov}' not in training data")
        if split.train[cov].isna().all():
            raise DataInsufficientError(str(formula), f"'{cov}' is entirely missing in training data")

    n_rows = int(split.train[list(formula.covariates) + [formula.outcome]].notna().all(axis=1).sum())
    if n_rows < min_rows:
        raise DataInsufficientError(
            str(formula), f"{n_rows} complete training rows, need at least {min_rows}"
        )


def fit_formula(
    formula: CandidateFormula,
    split: TrainTestSplit,
    config: Optional[SearchConfig] = None
) -> FittedModel:
    """
    Cross-validate, refit and score one candidate formula.

    Args:
        formula: Candidate formula
        split: Fixed train/test partition
        config: Search settings

    Returns:
        FittedModel with CV summary and held-out metrics

    Raises:
        DataInsufficientError: missing or too few training rows
        FormulaFitError: the forest could not be fitted
    """
    config = config or SearchConfig()
    start = time.time()

    _check_training_data(formula, split, min_rows=config.cv_folds)

    features = list(formula.covariates)
    X_train, y_train, X_test, y_test = prepare_train_test(
        split.train, split.test, features, formula.outcome
    )
    if len(X_test) == 0:
        raise DataInsufficientError(str(formula), "no complete held-out rows")

    mtry = compute_mtry(formula.n_predictors)
    model_cfg = config.model_config()

    try:
        folds = create_repeated_kfold_splits(
            len(X_train), n_folds=config.cv_folds,
            n_repeats=config.cv_repeats, random_state=config.random_state
        )
        fold_metrics = []
        for _, X_tr, y_tr, X_va, y_va in cv_split_generator(X_train, y_train, folds):
            fold_model = RandomForestModel(model_cfg, mtry=mtry).fit(X_tr, y_tr)
            fold_metrics.append(compute_regression_metrics(y_va, fold_model.predict(X_va)))

        model = RandomForestModel(model_cfg, mtry=mtry).fit(X_train, y_train, feature_names=features)
        test_metrics = compute_regression_metrics(y_test, model.predict(X_test))
    except ValueError as e:
        raise FormulaFitError(str(formula), str(e)) from e

    return FittedModel(
        formula=formula,
        model=model,
        mtry=mtry,
        cv_metrics=summarize_fold_metrics(fold_metrics),
        test_metrics=test_metrics,
        fit_seconds=time.time() - start,
    )


def run_model_search(
    clusters: Mapping[int, Sequence[str]],
    outcome: str,
    split: TrainTestSplit,
    config: Optional[SearchConfig] = None
) -> SearchResult:
    """
    Fit every candidate formula; skip the ones that fail.

    Args:
        clusters: Cluster id -> member covariates
        outcome: Outcome column name
        split: Fixed train/test partition
        config: Search settings

    Returns:
        SearchResult with fitted models in enumeration order
    """
    config = config or SearchConfig()
    n_candidates = count_formulas(nonempty_clusters(clusters))
    logger.info("Searching %d candidate formulas", n_candidates)

    fitted: List[FittedModel] = []
    failures: List[Tuple[CandidateFormula, str]] = []

    for formula in enumerate_formulas(clusters, outcome):
        try:
            result = fit_formula(formula, split, config)
        except FormulaFitError as e:
            logger.warning("Skipping formula %d: %s", formula.index, e)
            failures.append((formula, e.reason))
            continue

        fitted.append(result)
        logger.debug(
            "[%d/%d] %s  R2=%.4f RMSE=%.4f",
            formula.index + 1, n_candidates, formula, result.r2, result.rmse,
        )

    return SearchResult(fitted=fitted, failures=failures, n_candidates=n_candidates)
