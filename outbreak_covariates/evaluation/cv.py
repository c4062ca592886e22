"""
Cross-Validation for attack-rate models

1. One random train/test partition of complete-case rows, fixed before the
   formula search so every candidate is scored on the same held-out rows.
2. Repeated k-fold splits of the training partition (10 folds x 3 repeats
   by default) to estimate each candidate's out-of-sample error.
"""
import pandas as pd
import numpy as np
from typing import List, Tuple, Optional, Generator, Sequence
from dataclasses import dataclass
from sklearn.model_selection import RepeatedKFold, train_test_split

from outbreak_covariates.common.errors import InsufficientDataError
from outbreak_covariates.data.loader import complete_cases


@dataclass
class CVFold:
    """Represents a single CV fold."""
    fold_name: str
    repeat: int
    fold: int
    train_idx: np.ndarray
    test_idx: np.ndarray


@dataclass
class TrainTestSplit:
    """Fixed held-out partition shared by every candidate formula."""
    train: pd.DataFrame
    test: pd.DataFrame
    columns: List[str]
    train_fraction: float
    random_state: Optional[int]


def split_train_test(
    df: pd.DataFrame,
    columns: Sequence[str],
    train_fraction: float = 0.7,
    random_state: Optional[int] = 42
) -> TrainTestSplit:
    """
    Split the complete-case rows into training and held-out partitions.

    Args:
        df: Full outbreak table
        columns: Outcome + every modeled covariate; rows missing any are dropped
        train_fraction: Share of rows used for training
        random_state: Seed for the split

    Returns:
        TrainTestSplit
    """
    if not 0 < train_fraction < 1:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    columns = list(columns)
    complete = complete_cases(df, columns)
    if len(complete) < 4:
        raise InsufficientDataError(
            f"Only {len(complete)} complete rows over {len(columns)} columns; cannot split"
        )

    train_df, test_df = train_test_split(
        complete, train_size=train_fraction, random_state=random_state, shuffle=True
    )

    return TrainTestSplit(
        train=train_df.sort_index(),
        test=test_df.sort_index(),
        columns=columns,
        train_fraction=train_fraction,
        random_state=random_state,
    )


def create_repeated_kfold_splits(
    n_samples: int,
    n_folds: int = 10,
    n_repeats: int = 3,
    random_state: Optional[int] = 42
) -> List[CVFold]:
    """
    Create repeated k-fold splits over positional indices.

    Args:
        n_samples: Number of training rows
        n_folds: Folds per repeat
        n_repeats: Number of repeats, each with a fresh shuffle
        random_state: Seed (same seed -> same folds for every formula)

    Returns:
        List of CVFold objects, repeat-major order
    """
    if n_folds < 2:
        raise ValueError(f"n_folds must be >= 2, got {n_folds}")
    if n_samples < n_folds:
        raise ValueError(f"{n_samples} samples is fewer than {n_folds} folds")

    rkf = RepeatedKFold(n_splits=n_folds, n_repeats=n_repeats, random_state=random_state)

    folds = []
    for i, (train_idx, test_idx) in enumerate(rkf.split(np.arange(n_samples))):
        repeat, fold = divmod(i, n_folds)
        folds.append(CVFold(
            fold_name=f"rep{repeat + 1}_fold{fold + 1}",
            repeat=repeat + 1,
            fold=fold + 1,
            train_idx=train_idx,
            test_idx=test_idx,
        ))

    return folds


def cv_split_generator(
    X: np.ndarray,
    y: np.ndarray,
    folds: List[CVFold]
) -> Generator[Tuple[str, np.ndarray, np.ndarray, np.ndarray, np.ndarray], None, None]:
    """
    Yield (fold_name, X_train, y_train, X_test, y_test) per fold.
    """
    for fold in folds:
        yield (
            fold.fold_name,
            X[fold.train_idx], y[fold.train_idx],
            X[fold.test_idx], y[fold.test_idx],
        )


def prepare_train_test(
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    feature_cols: List[str],
    target_col: str = 'attack_rate'
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Prepare X, y arrays for training and testing.

    Rows missing the target or any of `feature_cols` are dropped from each
    partition independently.

    Args:
        train_df: Training DataFrame
        test_df: Test DataFrame
        feature_cols: List of feature column names
        target_col: Target column name

    Returns:
        Tuple of (X_train, y_train, X_test, y_test)
    """
    required_cols = list(feature_cols) + [target_col]

    train_subset = complete_cases(train_df, required_cols)
    test_subset = complete_cases(test_df, required_cols)

    X_train = train_subset[list(feature_cols)].to_numpy(dtype=float)
    y_train = train_subset[target_col].to_numpy(dtype=float)
    X_test = test_subset[list(feature_cols)].to_numpy(dtype=float)
    y_test = test_subset[target_col].to_numpy(dtype=float)

    return X_train, y_train, X_test, y_test
