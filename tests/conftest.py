"""Shared synthetic outbreak data for the test suite."""

import numpy as np
import pandas as pd
import pytest

from outbreak_covariates.data.loader import OutbreakData
from outbreak_covariates.models.search import SearchConfig

COVARIATES = ["driver", "rainfall", "poverty", "altitude"]


def make_outbreak_frame(n: int = 100, seed: int = 0) -> pd.DataFrame:
    """Attack rate is an exact linear function of `driver`; the rest is noise."""
    rng = np.random.default_rng(seed)
    driver = rng.uniform(0.0, 1.0, n)
    return pd.DataFrame({
        "location": [f"district_{i:03d}" for i in range(n)],
        "start_date": pd.date_range("2012-01-01", periods=n, freq="14D"),
        "country": rng.choice(["Kenya", "India", "Brazil"], n),
        "attack_rate": 0.4 * driver,
        "driver": driver,
        "rainfall": rng.normal(100.0, 20.0, n),
        "poverty": rng.normal(0.3, 0.1, n),
        "altitude": rng.normal(800.0, 150.0, n),
    })


@pytest.fixture
def outbreak_frame():
    return make_outbreak_frame()


@pytest.fixture
def outbreak_data(outbreak_frame):
    return OutbreakData(
        frame=outbreak_frame,
        outcome="attack_rate",
        id_columns=["location", "start_date"],
        covariates=list(COVARIATES),
        labels={"driver": "Vector index", "rainfall": "Rainfall (mm)"},
    )


@pytest.fixture
def fast_config():
    return {
        "clustering": {"method": "complete"},
        "search": {
            "train_fraction": 0.7,
            "cv_folds": 3,
            "cv_repeats": 1,
            "n_estimators": 25,
            "min_samples_leaf": 2,
            "random_state": 7,
            "n_jobs": 1,
        },
        "importance": {"n_repeats": 3},
        "partial_dependence": {"grid_resolution": 5},
    }


@pytest.fixture
def search_config(fast_config):
    return SearchConfig.from_config(fast_config)
