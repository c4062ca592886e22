"""
Evaluation Metrics for attack-rate regression

Implements the held-out metrics used to compare candidate formulas:
- RMSE
- R² (squared Pearson correlation of predicted vs. observed)
- MAE

R² follows caret's postResample definition rather than 1 - SS_res/SS_tot,
so it is always in [0, 1] and NaN when predictions are constant.
"""
import numpy as np
from typing import Dict, List
from sklearn.metrics import mean_absolute_error, mean_squared_error


def compute_rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root mean squared error."""
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def compute_r2(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Squared Pearson correlation between predictions and observations.

    Args:
        y_true: Observed outcome
        y_pred: Predicted outcome

    Returns:
        R² in [0, 1], or NaN if either vector is constant
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)

    if len(y_true) < 2 or np.ptp(y_true) == 0 or np.ptp(y_pred) == 0:
        return np.nan

    r = np.corrcoef(y_true, y_pred)[0, 1]
    return float(min(r * r, 1.0))


def compute_mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean absolute error."""
    return float(mean_absolute_error(y_true, y_pred))


def compute_regression_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray
) -> Dict[str, float]:
    """
    Compute all held-out metrics.

    Args:
        y_true: Observed outcome
        y_pred: Predicted outcome

    Returns:
        Dictionary with rmse, r2, mae, n_samples
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)

    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape} vs y_pred {y_pred.shape}")
    if len(y_true) == 0:
        raise ValueError("Cannot compute metrics on an empty sample")

    return {
        'rmse': compute_rmse(y_true, y_pred),
        'r2': compute_r2(y_true, y_pred),
        'mae': compute_mae(y_true, y_pred),
        'n_samples': int(len(y_true)),
    }


def summarize_fold_metrics(fold_metrics: List[Dict[str, float]]) -> Dict[str, float]:
    """Mean and standard deviation of per-fold metrics (NaN folds ignored)."""
    summary: Dict[str, float] = {'n_folds': len(fold_metrics)}
    for key in ('rmse', 'r2', 'mae'):
        vals = np.array([m[key] for m in fold_metrics], dtype=np.float64)
        vals = vals[~np.isnan(vals)]
        summary[f'{key}_mean'] = float(np.mean(vals)) if len(vals) else np.nan
        summary[f'{key}_std'] = float(np.std(vals)) if len(vals) else np.nan
    return summary


def print_metrics(metrics: Dict[str, float], title: str = "Metrics") -> None:
    """Pretty print metrics."""
    print(f"\n{title}")
    print("-" * 40)
    print(f"  RMSE:         {metrics.get('rmse', np.nan):.4f}")
    print(f"  R²:           {metrics.get('r2', np.nan):.4f}")
    print(f"  MAE:          {metrics.get('mae', np.nan):.4f}")
    print(f"  Samples:      {metrics.get('n_samples', 0)}")
