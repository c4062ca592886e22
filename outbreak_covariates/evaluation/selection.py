"""
Model Selector

Ranks fitted candidate formulas by held-out R² and reports the winner's
importances and partial dependence.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from outbreak_covariates.evaluation.cv import TrainTestSplit, prepare_train_test
from outbreak_covariates.models.search import FittedModel

IMPORTANCE_METRICS = ('pct_inc_mse', 'inc_node_purity')


@dataclass
class BestModel:
    """The winning fitted model and its importance report."""
    fitted: FittedModel
    importances: pd.DataFrame
    partial_dependence: Optional[pd.DataFrame] = None

    @property
    def formula(self) -> str:
        return str(self.fitted.formula)

    @property
    def covariates(self) -> List[str]:
        return list(self.fitted.formula.covariates)

    def to_dict(self) -> Dict:
        return {
            'formula': self.formula,
            'formula_index': self.fitted.formula.index,
            'covariates': self.covariates,
            'mtry': self.fitted.mtry,
            'test_metrics': self.fitted.test_metrics,
            'cv_metrics': self.fitted.cv_metrics,
        }


def _r2_key(value: float) -> float:
    return -math.inf if value is None or np.isnan(value) else value


def select_best_model(fitted: Sequence[FittedModel]) -> FittedModel:
    """
    Model with the highest held-out R².

    Ties go to the first in enumeration order; NaN R² ranks below any
    defined value.
    """
    if not fitted:
        raise ValueError("No fitted models to select from")

    ordered = sorted(fitted, key=lambda m: m.formula.index)
    best = ordered[0]
    for candidate in ordered[1:]:
        if _r2_key(candidate.r2) > _r2_key(best.r2):
            best = candidate
    return best


def rank_models(fitted: Sequence[FittedModel]) -> pd.DataFrame:
    """
    Ranked table of (formula, RMSE, R², MAE), best first.

    Returns:
        DataFrame with columns: rank, formula_index, formula, n_predictors,
        mtry, rmse, r2, mae, cv_rmse, cv_r2, cv_mae
    """
    columns = ['rank', 'formula_index', 'formula', 'n_predictors', 'mtry',
               'rmse', 'r2', 'mae', 'cv_rmse', 'cv_r2', 'cv_mae']
    if not fitted:
        return pd.DataFrame(columns=columns)

    rows = []
    for m in fitted:
        rows.append({
            'formula_index': m.formula.index,
            'formula': str(m.formula),
            'n_predictors': m.formula.n_predictors,
            'mtry': m.mtry,
            'rmse': m.rmse,
            'r2': m.r2,
            'mae': m.mae,
            'cv_rmse': m.cv_metrics.get('rmse_mean', np.nan),
            'cv_r2': m.cv_metrics.get('r2_mean', np.nan),
            'cv_mae': m.cv_metrics.get('mae_mean', np.nan),
        })

    df = pd.DataFrame(rows).sort_values('formula_index', kind='mergesort')
    df['_key'] = df['r2'].fillna(-np.inf)
    df = df.sort_values('_key', ascending=False, kind='mergesort').drop(columns='_key')
    df.insert(0, 'rank', np.arange(1, len(df) + 1))

    return df[columns].reset_index(drop=True)


def importance_table(
    fitted: FittedModel,
    split: TrainTestSplit,
    labels: Optional[Mapping[str, str]] = None,
    n_repeats: int = 10
) -> pd.DataFrame:
    """
    Per-covariate importances of a fitted model.

    Args:
        fitted: Fitted model
        split: The train/test partition it was fitted on; permutation
            importance is measured on the held-out rows
        labels: Optional display labels
        n_repeats: Permutations per covariate

    Returns:
        Long DataFrame with columns: covariate, label, metric_name, value
    """
    labels = labels or {}
    features = list(fitted.formula.covariates)
    _, _, X_test, y_test = prepare_train_test(
        split.train, split.test, features, fitted.formula.outcome
    )

    per_metric = {
        'pct_inc_mse': fitted.model.get_permutation_importance(X_test, y_test, n_repeats=n_repeats),
        'inc_node_purity': fitted.model.get_node_purity_importance(),
    }
    fitted.importances = per_metric

    rows = []
    for metric_name in IMPORTANCE_METRICS:
        for cov in features:
            rows.append({
                'covariate': cov,
                'label': labels.get(cov, cov),
                'metric_name': metric_name,
                'value': float(per_metric[metric_name][cov]),
            })
    return pd.DataFrame(rows, columns=['covariate', 'label', 'metric_name', 'value'])


def partial_dependence_table(
    fitted: FittedModel,
    split: TrainTestSplit,
    labels: Optional[Mapping[str, str]] = None,
    grid_resolution: int = 20
) -> pd.DataFrame:
    """Partial dependence over the training rows, one curve per covariate."""
    labels = labels or {}
    features = list(fitted.formula.covariates)
    X_train, _, _, _ = prepare_train_test(
        split.train, split.test, features, fitted.formula.outcome
    )
    table = fitted.model.get_partial_dependence(X_train, grid_resolution=grid_resolution)
    table.insert(1, 'label', table['covariate'].map(lambda c: labels.get(c, c)))
    return table


def build_best_model(
    fitted: Sequence[FittedModel],
    split: TrainTestSplit,
    labels: Optional[Mapping[str, str]] = None,
    n_repeats: int = 10,
    grid_resolution: Optional[int] = 20
) -> BestModel:
    """Select the best model and attach its importance report."""
    best = select_best_model(fitted)
    importances = importance_table(best, split, labels=labels, n_repeats=n_repeats)
    pdp = None
    if grid_resolution:
        pdp = partial_dependence_table(best, split, labels=labels, grid_resolution=grid_resolution)
    return BestModel(fitted=best, importances=importances, partial_dependence=pdp)
