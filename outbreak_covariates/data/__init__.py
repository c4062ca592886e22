"""Data module - outbreak table and covariate metadata loading."""

from outbreak_covariates.data.loader import (
    OutbreakData,
    load_outbreaks,
    read_outbreaks,
    load_metadata,
    load_dataset,
    load_dataset_from_config,
    complete_cases,
)

__all__ = [
    'OutbreakData',
    'load_outbreaks',
    'read_outbreaks',
    'load_metadata',
    'load_dataset',
    'load_dataset_from_config',
    'complete_cases',
]
