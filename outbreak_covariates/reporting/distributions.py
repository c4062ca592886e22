"""
Distribution Reporter

Descriptive tables for the outbreak dataset. Side branch of the pipeline:
nothing downstream depends on these outputs.
"""
import numpy as np
import pandas as pd
from typing import Dict, List, Literal, Optional, Sequence

Period = Literal["year", "month"]


def count_by_category(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """
    Outbreak counts per category, most frequent first.

    Missing categories are counted under "Unknown".

    Returns:
        DataFrame with columns: <column>, n_outbreaks, share
    """
    if column not in df.columns:
        raise ValueError(f"Column not found: {column}")

    counts = (
        df[column].fillna("Unknown").astype(str)
        .value_counts(sort=True)
        .rename_axis(column)
        .reset_index(name='n_outbreaks')
    )
    total = counts['n_outbreaks'].sum()
    counts['share'] = counts['n_outbreaks'] / total if total else np.nan
    return counts


def count_by_period(
    df: pd.DataFrame,
    date_column: str = "start_date",
    period: Period = "year"
) -> pd.DataFrame:
    """
    Outbreak counts per calendar year or month of start date.

    Periods with no outbreaks between the first and last are filled with 0.
    Rows with an unparseable date are left out.

    Returns:
        DataFrame with columns: period, n_outbreaks
    """
    if period not in ("year", "month"):
        raise ValueError(f"Unknown period: {period}")

    dates = pd.to_datetime(df[date_column], errors='coerce').dropna()
    if dates.empty:
        return pd.DataFrame(columns=['period', 'n_outbreaks'])

    freq = 'Y' if period == "year" else 'M'
    periods = dates.dt.to_period(freq)
    counts = periods.value_counts().sort_index()

    full_range = pd.period_range(counts.index.min(), counts.index.max(), freq=freq)
    counts = counts.reindex(full_range, fill_value=0)

    return pd.DataFrame({
        'period': counts.index.astype(str),
        'n_outbreaks': counts.to_numpy(dtype=int),
    })


def covariate_summary(
    df: pd.DataFrame,
    covariates: Sequence[str],
    labels: Optional[Dict[str, str]] = None
) -> pd.DataFrame:
    """
    Per-covariate descriptive statistics.

    Returns:
        DataFrame with columns: covariate, label, n, n_missing, mean, std,
        min, q25, median, q75, max
    """
    labels = labels or {}
    rows: List[Dict] = []
    for cov in covariates:
        values = pd.to_numeric(df[cov], errors='coerce')
        present = values.dropna()
        has = len(present) > 0
        rows.append({
            'covariate': cov,
            'label': labels.get(cov, cov),
            'n': int(len(present)),
            'n_missing': int(values.isna().sum()),
            'mean': present.mean() if has else np.nan,
            'std': present.std() if len(present) > 1 else np.nan,
            'min': present.min() if has else np.nan,
            'q25': present.quantile(0.25) if has else np.nan,
            'median': present.median() if has else np.nan,
            'q75': present.quantile(0.75) if has else np.nan,
            'max': present.max() if has else np.nan,
        })
    return pd.DataFrame(rows)


def covariate_histogram(
    df: pd.DataFrame,
    column: str,
    bins: int = 20
) -> pd.DataFrame:
    """
    Histogram of one numeric column.

    Returns:
        DataFrame with columns: bin_left, bin_right, count
        (empty if the column has no values)
    """
    values = pd.to_numeric(df[column], errors='coerce').dropna().to_numpy()
    if len(values) == 0:
        return pd.DataFrame(columns=['bin_left', 'bin_right', 'count'])

    counts, edges = np.histogram(values, bins=bins)
    return pd.DataFrame({
        'bin_left': edges[:-1],
        'bin_right': edges[1:],
        'count': counts,
    })
