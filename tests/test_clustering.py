"""Tests for the covariate cluster selector."""

import numpy as np
import pandas as pd
import pytest

from outbreak_covariates.common.errors import EmptyClusterError
from outbreak_covariates.features.clustering import (
    ClusterAssignment,
    cluster_covariates,
    correlation_distance,
    n_clusters_for,
    nonempty_clusters,
)
from outbreak_covariates.features.correlation import covariate_correlation


@pytest.fixture
def grouped_frame():
    """Two blocks of three near-duplicate covariates."""
    rng = np.random.default_rng(3)
    n = 200
    base_a = rng.normal(size=n)
    base_b = rng.normal(size=n)
    cols = {}
    for i in range(3):
        cols[f"temp_{i}"] = base_a + rng.normal(scale=0.05, size=n)
        cols[f"income_{i}"] = base_b + rng.normal(scale=0.05, size=n)
    return pd.DataFrame(cols)


class TestClusterCount:

    @pytest.mark.parametrize("n, expected", [(1, 1), (2, 1), (3, 1), (6, 3), (7, 3), (10, 5)])
    def test_half_rounded_down(self, n, expected):
        assert n_clusters_for(n) == expected

    def test_zero_covariates_rejected(self):
        with pytest.raises(ValueError):
            n_clusters_for(0)


class TestCorrelationDistance:

    def test_zero_diagonal_and_symmetric(self, grouped_frame):
        corr = covariate_correlation(grouped_frame, grouped_frame.columns)
        dist = correlation_distance(corr).to_numpy()

        np.testing.assert_allclose(np.diag(dist), 0.0)
        np.testing.assert_allclose(dist, dist.T)

    def test_nan_coordinates_are_scaled(self):
        corr = pd.DataFrame(
            [[1.0, 0.5, np.nan],
             [0.5, 1.0, 0.2],
             [np.nan, 0.2, 1.0]],
            index=list("xyz"), columns=list("xyz"),
        )
        dist = correlation_distance(corr)

        # x vs y share two of three coordinates: sqrt((0.25 + 0.25) * 3 / 2)
        assert dist.loc["x", "y"] == pytest.approx(np.sqrt(0.75))


class TestClusterCovariates:

    def test_partition_invariant(self, grouped_frame):
        corr = covariate_correlation(grouped_frame, grouped_frame.columns)
        assignment = cluster_covariates(corr)

        clusters = assignment.clusters()
        members = [c for group in clusters.values() for c in group]
        assert sorted(members) == sorted(grouped_frame.columns)
        assert len(members) == len(set(members))
        assert sorted(clusters) == list(range(1, len(clusters) + 1))
        assert assignment.n_requested == 3

    def test_correlated_blocks_cluster_together(self, grouped_frame):
        corr = covariate_correlation(grouped_frame, grouped_frame.columns)
        assignment = cluster_covariates(corr, n_clusters=2)

        temp_ids = {assignment.assignment[f"temp_{i}"] for i in range(3)}
        income_ids = {assignment.assignment[f"income_{i}"] for i in range(3)}
        assert len(temp_ids) == 1
        assert len(income_ids) == 1
        assert temp_ids != income_ids

    def test_ids_follow_first_appearance(self, grouped_frame):
        corr = covariate_correlation(grouped_frame, grouped_frame.columns)
        assignment = cluster_covariates(corr, n_clusters=2)

        # temp_0 is the first column, so its cluster is numbered 1
        assert assignment.assignment["temp_0"] == 1

    def test_undefined_covariate_is_dropped(self, grouped_frame):
        df = grouped_frame.copy()
        df["empty"] = np.nan
        corr = covariate_correlation(df, df.columns)
        assignment = cluster_covariates(corr)

        assert "empty" in assignment.dropped
        assert "empty" not in assignment.assignment

    def test_single_covariate(self):
        df = pd.DataFrame({"only": [1.0, 2.0, 4.0]})
        corr = covariate_correlation(df, ["only"])
        assignment = cluster_covariates(corr)

        assert assignment.clusters() == {1: ("only",)}

    def test_to_frame(self, grouped_frame):
        corr = covariate_correlation(grouped_frame, grouped_frame.columns)
        table = cluster_covariates(corr).to_frame({"temp_0": "Temperature"})

        assert list(table.columns) == ["covariate", "label", "cluster_id"]
        assert table.loc[table["covariate"] == "temp_0", "label"].item() == "Temperature"


class TestEmptyClusters:

    def test_empty_cluster_rejected(self):
        with pytest.raises(EmptyClusterError) as exc:
            nonempty_clusters({1: ("a", "b"), 2: ()})
        assert exc.value.cluster_ids == [2]

    def test_no_clusters_rejected(self):
        with pytest.raises(EmptyClusterError):
            nonempty_clusters({})

    def test_short_cut_lists_only_produced_ids(self):
        assignment = ClusterAssignment({"a": 1, "b": 1}, n_requested=2)

        assert assignment.clusters() == {1: ("a", "b")}
        assert nonempty_clusters(assignment.clusters()) == {1: ("a", "b")}

    def test_duplicated_columns_cut_has_no_empty_cluster(self):
        x = np.random.default_rng(5).uniform(size=100)
        df = pd.DataFrame({name: x for name in ["temp_c", "temp_f", "temp_k", "temp_r"]})
        corr = covariate_correlation(df, df.columns)
        assignment = cluster_covariates(corr)

        clusters = assignment.clusters()
        assert assignment.n_requested == 2
        assert list(clusters) == list(range(1, assignment.n_clusters + 1))
        assert all(len(members) > 0 for members in clusters.values())
        assert sorted(c for m in clusters.values() for c in m) == sorted(df.columns)
        nonempty_clusters(clusters)
