"""End-to-end pipeline tests on synthetic outbreaks."""

import json
import pickle

import numpy as np
import pytest

from outbreak_covariates.common.errors import AnalysisError, InsufficientDataError
from outbreak_covariates.config import get_section, load_config
from outbreak_covariates.data.loader import OutbreakData
from outbreak_covariates.models.base import BaseModel
from outbreak_covariates.pipeline import run_pipeline, write_outputs


@pytest.fixture
def result(outbreak_data, fast_config):
    return run_pipeline(outbreak_data, fast_config)


class TestRunPipeline:

    def test_perfect_driver_wins(self, result):
        best = result.best

        assert "driver" in best.covariates
        assert best.fitted.r2 == max(m.r2 for m in result.search.fitted)
        assert result.ranking.loc[0, "formula"] == best.formula

        pct = best.importances[best.importances["metric_name"] == "pct_inc_mse"]
        assert pct.set_index("covariate")["value"].idxmax() == "driver"

    def test_candidate_count_matches_clusters(self, result):
        sizes = [len(m) for m in result.clusters.clusters().values()]

        assert result.clusters.n_clusters == 2
        assert result.search.n_candidates == int(np.prod(sizes))
        assert len(result.search.fitted) == result.search.n_candidates
        assert len(result.ranking) == result.search.n_candidates

    def test_same_seed_same_metrics(self, outbreak_data, fast_config, result):
        again = run_pipeline(outbreak_data, fast_config)

        for a, b in zip(result.search.fitted, again.search.fitted):
            assert a.formula == b.formula
            assert a.test_metrics == b.test_metrics

    def test_all_missing_covariate_is_dropped(self, outbreak_data, fast_config):
        frame = outbreak_data.frame.copy()
        frame["empty"] = np.nan
        data = OutbreakData(
            frame=frame,
            outcome=outbreak_data.outcome,
            id_columns=outbreak_data.id_columns,
            covariates=outbreak_data.covariates + ["empty"],
            labels=outbreak_data.labels,
        )
        result = run_pipeline(data, fast_config)

        assert result.correlation.loc["empty"].isna().all()
        assert result.clusters.dropped == ("empty",)
        assert "driver" in result.best.covariates

    def test_duplicated_covariates_still_fit(self, outbreak_frame, fast_config):
        x = outbreak_frame["driver"]
        frame = outbreak_frame[["location", "start_date", "attack_rate"]].copy()
        names = ["temp_c", "temp_f", "temp_k", "temp_r"]
        for name in names:
            frame[name] = x
        data = OutbreakData(
            frame=frame,
            outcome="attack_rate",
            id_columns=["location", "start_date"],
            covariates=names,
            labels={},
        )
        result = run_pipeline(data, fast_config)

        assert len(result.search.fitted) >= 1
        assert result.search.n_candidates == len(result.search.fitted)
        assert set(result.best.covariates) <= set(names)

    def test_every_formula_failing_is_fatal(self, outbreak_data, fast_config):
        config = dict(fast_config, search=dict(fast_config["search"], cv_folds=100))

        with pytest.raises(InsufficientDataError, match="candidate formulas failed"):
            run_pipeline(outbreak_data, config)

    def test_insufficient_error_is_analysis_error(self):
        assert issubclass(InsufficientDataError, AnalysisError)


class TestWriteOutputs:

    def test_files_written(self, result, tmp_path):
        written = write_outputs(result, tmp_path / "out")
        names = {p.name for p in written}

        assert names == {
            "correlation_matrix.csv",
            "outcome_correlations.csv",
            "cluster_assignment.csv",
            "model_ranking.csv",
            "importances.csv",
            "partial_dependence.csv",
            "best_model.json",
        }
        summary = json.loads((tmp_path / "out" / "best_model.json").read_text())
        assert summary["best_model"]["formula"] == result.best.formula
        assert summary["n_candidates"] == result.search.n_candidates

    def test_best_model_pickle_roundtrip(self, result, tmp_path):
        path = tmp_path / "best.pkl"
        result.best.fitted.model.save(path)
        loaded = BaseModel.load(path)

        X = result.split.test[result.best.covariates].to_numpy(dtype=float)
        np.testing.assert_array_equal(loaded.predict(X), result.best.fitted.model.predict(X))
        assert loaded.feature_names == list(result.best.covariates)

    def test_load_rejects_other_pickles(self, tmp_path):
        path = tmp_path / "not_a_model.pkl"
        with open(path, "wb") as f:
            pickle.dump({"formula": "attack_rate ~ driver"}, f)

        with pytest.raises(TypeError):
            BaseModel.load(path)


class TestConfig:

    def test_default_config_sections(self):
        cfg = load_config()

        assert cfg["data"]["outcome"] == "attack_rate"
        assert cfg["search"]["cv_folds"] == 10
        assert cfg["search"]["cv_repeats"] == 3
        assert cfg["search"]["train_fraction"] == 0.7

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_get_section(self):
        cfg = {"search": {"cv_folds": 5}, "clustering": None}

        assert get_section(cfg, "search") == {"cv_folds": 5}
        assert get_section(cfg, "clustering") == {}
        assert get_section(cfg, "output", "results_dir") == {}
