"""Evaluation module - train/test splits, cross-validation and metrics.

Best-model selection lives in `outbreak_covariates.evaluation.selection`; it is
not re-exported here because it depends on the model search.
"""

from outbreak_covariates.evaluation.cv import (
    CVFold,
    TrainTestSplit,
    split_train_test,
    create_repeated_kfold_splits,
    cv_split_generator,
    prepare_train_test,
)

from outbreak_covariates.evaluation.metrics import (
    compute_rmse,
    compute_r2,
    compute_mae,
    compute_regression_metrics,
    summarize_fold_metrics,
)

__all__ = [
    # CV module
    'CVFold',
    'TrainTestSplit',
    'split_train_test',
    'create_repeated_kfold_splits',
    'cv_split_generator',
    'prepare_train_test',
    # Metrics module
    'compute_rmse',
    'compute_r2',
    'compute_mae',
    'compute_regression_metrics',
    'summarize_fold_metrics',
]
