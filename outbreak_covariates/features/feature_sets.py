"""Covariate set definitions.

Shared helper to decide which columns of the outbreak table are modeled as
covariates. Identifier, date and category columns are filtered out by the
caller; text columns are skipped unless most of their values parse as numbers.
"""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd


def select_covariate_columns(
    frame: pd.DataFrame,
    min_numeric_fraction: float = 0.5,
) -> List[str]:
    selected = []
    for col in frame.columns:
        values = frame[col]
        if pd.api.types.is_bool_dtype(values):
            continue
        if pd.api.types.is_numeric_dtype(values):
            selected.append(col)
            continue
        non_missing = values.dropna()
        if len(non_missing) == 0:
            # Entirely empty columns still count; they surface as undefined
            # correlations rather than silently disappearing.
            selected.append(col)
            continue
        parsed = pd.to_numeric(non_missing, errors='coerce')
        if parsed.notna().mean() >= min_numeric_fraction:
            selected.append(col)

    return selected


def model_columns(outcome: str, covariates: Iterable[str]) -> List[str]:
    """Outcome followed by covariates, duplicates removed."""
    cols = [outcome]
    for c in covariates:
        if c not in cols:
            cols.append(c)
    return cols
