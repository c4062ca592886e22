"""
Correlation Engine

Pairwise-complete Pearson correlation among covariates, and between the
outcome and each covariate with its two-sided p-value.

Undefined correlations (zero variance, fewer than 2 complete pairs) are
returned as NaN, never raised.
"""
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Sequence
from scipy import stats

from outbreak_covariates.common.errors import UNDEFINED


def covariate_correlation(
    df: pd.DataFrame,
    covariates: Sequence[str],
    min_periods: int = 2
) -> pd.DataFrame:
    """
    Compute the covariate correlation matrix.

    Each pair (i, j) uses only the rows where both values are present, so
    different pairs may use different subsets of observations.

    Args:
        df: Table containing the covariate columns
        covariates: Covariate column names
        min_periods: Minimum complete pairs for a defined correlation

    Returns:
        Square symmetric DataFrame indexed by covariate name
    """
    covariates = list(covariates)
    values = df[covariates].apply(pd.to_numeric, errors='coerce')
    values = values.replace([np.inf, -np.inf], np.nan)

    corr = values.corr(method='pearson', min_periods=max(min_periods, 2))

    # Floating-point noise can leave |r| a hair above 1
    corr = corr.clip(lower=-1.0, upper=1.0)

    # Mirror the upper triangle so the matrix is exactly symmetric
    arr = corr.to_numpy(copy=True)
    upper = np.triu_indices_from(arr, k=1)
    arr[(upper[1], upper[0])] = arr[upper]

    return pd.DataFrame(arr, index=covariates, columns=covariates)


def _pearson_pair(x: np.ndarray, y: np.ndarray) -> Dict[str, float]:
    mask = ~(np.isnan(x) | np.isnan(y))
    x, y = x[mask], y[mask]
    n = int(mask.sum())

    if n < 2 or np.ptp(x) == 0 or np.ptp(y) == 0:
        return {'r': UNDEFINED, 'p_value': UNDEFINED, 'n': n}

    r, p = stats.pearsonr(x, y)
    return {'r': float(np.clip(r, -1.0, 1.0)), 'p_value': float(p), 'n': n}


def outcome_correlations(
    df: pd.DataFrame,
    outcome: str,
    covariates: Sequence[str],
    labels: Optional[Dict[str, str]] = None
) -> pd.DataFrame:
    """
    Correlate the outcome with every covariate.

    Args:
        df: Table with outcome and covariate columns
        outcome: Outcome column name
        covariates: Covariate column names
        labels: Optional display labels

    Returns:
        DataFrame with columns: covariate, label, r, p_value, n
        (one row per covariate, input order)
    """
    labels = labels or {}
    y = pd.to_numeric(df[outcome], errors='coerce').to_numpy(dtype=float)

    rows: List[Dict] = []
    for cov in covariates:
        x = pd.to_numeric(df[cov], errors='coerce').to_numpy(dtype=float)
        result = _pearson_pair(x, y)
        rows.append({'covariate': cov, 'label': labels.get(cov, cov), **result})

    return pd.DataFrame(rows, columns=['covariate', 'label', 'r', 'p_value', 'n'])


def undefined_pairs(corr: pd.DataFrame) -> List[tuple]:
    """Off-diagonal covariate pairs whose correlation is undefined."""
    pairs = []
    names = list(corr.index)
    arr = corr.to_numpy()
    for i in range(len(names)):
        for j in range(i + 1, len(names)):
            if np.isnan(arr[i, j]):
                pairs.append((names[i], names[j]))
    return pairs
