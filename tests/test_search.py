"""Tests for candidate formula enumeration and fitting."""

import numpy as np
import pytest

from outbreak_covariates.common.errors import (
    DataInsufficientError,
    EmptyClusterError,
    InsufficientDataError,
)
from outbreak_covariates.evaluation.cv import TrainTestSplit, split_train_test
from outbreak_covariates.models.random_forest import compute_mtry
from outbreak_covariates.models.search import (
    CandidateFormula,
    count_formulas,
    enumerate_formulas,
    fit_formula,
    run_model_search,
)
from tests.conftest import COVARIATES


@pytest.fixture
def split(outbreak_frame):
    return split_train_test(
        outbreak_frame, ["attack_rate"] + COVARIATES, train_fraction=0.7, random_state=1
    )


class TestEnumeration:

    def test_two_by_three_gives_six(self):
        clusters = {1: ("a", "b"), 2: ("c", "d", "e")}
        formulas = list(enumerate_formulas(clusters, "attack_rate"))

        assert count_formulas(clusters) == 6
        assert len(formulas) == 6
        assert len({f.covariates for f in formulas}) == 6
        for f in formulas:
            assert f.covariates[0] in ("a", "b")
            assert f.covariates[1] in ("c", "d", "e")

    def test_indices_follow_enumeration_order(self):
        formulas = list(enumerate_formulas({1: ("a", "b"), 2: ("c",)}, "y"))

        assert [f.index for f in formulas] == [0, 1]
        assert formulas[0].covariates == ("a", "c")
        assert str(formulas[1]) == "y ~ b + c"

    def test_enumeration_is_lazy(self):
        clusters = {k: tuple(f"c{k}_{i}" for i in range(10)) for k in range(1, 9)}
        gen = enumerate_formulas(clusters, "y")

        assert count_formulas(clusters) == 10 ** 8
        first = next(gen)
        assert first.covariates == tuple(f"c{k}_0" for k in range(1, 9))

    def test_empty_cluster_rejected(self):
        with pytest.raises(EmptyClusterError):
            list(enumerate_formulas({1: ("a",), 2: ()}, "y"))


class TestMtry:

    @pytest.mark.parametrize("p, expected", [(1, 1), (2, 1), (3, 2), (4, 2), (9, 3), (12, 3)])
    def test_round_sqrt(self, p, expected):
        assert compute_mtry(p) == expected


class TestFitFormula:

    def test_driver_formula_scores_well(self, split, search_config):
        formula = CandidateFormula(0, "attack_rate", ("driver", "rainfall"))
        fitted = fit_formula(formula, split, search_config)

        assert fitted.mtry == 1
        assert fitted.r2 > 0.6
        assert fitted.test_metrics["n_samples"] == len(split.test)
        assert fitted.cv_metrics["n_folds"] == 3

    def test_refit_is_reproducible(self, split, search_config):
        formula = CandidateFormula(0, "attack_rate", ("driver", "poverty"))
        first = fit_formula(formula, split, search_config)
        second = fit_formula(formula, split, search_config)

        assert first.test_metrics == second.test_metrics
        assert first.cv_metrics == second.cv_metrics

    def test_all_missing_covariate_raises(self, split, search_config):
        train = split.train.copy()
        train["empty"] = np.nan
        test = split.test.copy()
        test["empty"] = np.nan
        broken = TrainTestSplit(train, test, split.columns, 0.7, 1)

        with pytest.raises(DataInsufficientError):
            fit_formula(CandidateFormula(0, "attack_rate", ("empty",)), broken, search_config)


class TestRunModelSearch:

    def test_failed_formula_is_skipped(self, split, search_config):
        train = split.train.copy()
        train["empty"] = np.nan
        test = split.test.copy()
        test["empty"] = np.nan
        broken = TrainTestSplit(train, test, split.columns, 0.7, 1)

        result = run_model_search(
            {1: ("driver",), 2: ("empty", "rainfall")}, "attack_rate", broken, search_config
        )

        assert result.n_candidates == 2
        assert len(result.fitted) == 1
        assert result.fitted[0].formula.covariates == ("driver", "rainfall")
        assert len(result.failures) == 1
        assert result.failures[0][0].covariates == ("driver", "empty")

    def test_one_fitted_model_per_formula(self, split, search_config):
        clusters = {1: ("driver", "poverty"), 2: ("rainfall", "altitude")}
        result = run_model_search(clusters, "attack_rate", split, search_config)

        assert len(result.fitted) == 4
        assert [m.formula.index for m in result.fitted] == [0, 1, 2, 3]
        with_driver = [m.r2 for m in result.fitted if "driver" in m.formula.covariates]
        without = [m.r2 for m in result.fitted if "driver" not in m.formula.covariates]
        assert min(with_driver) > max(without)


class TestSplit:

    def test_complete_cases_only(self, outbreak_frame):
        frame = outbreak_frame.copy()
        frame.loc[:9, "rainfall"] = np.nan
        split = split_train_test(frame, ["attack_rate"] + COVARIATES, random_state=1)

        assert len(split.train) + len(split.test) == 90
        assert not split.train["rainfall"].isna().any()

    def test_too_few_complete_rows(self, outbreak_frame):
        frame = outbreak_frame.copy()
        frame.loc[3:, "driver"] = np.nan

        with pytest.raises(InsufficientDataError, match="Only 3 complete rows"):
            split_train_test(frame, ["attack_rate"] + COVARIATES)
