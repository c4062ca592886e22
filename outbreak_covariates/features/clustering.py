"""
Cluster Selector

Groups covariates by the similarity of their correlation profiles:

1. Each covariate's row of the correlation matrix is a point
2. Euclidean distance between those points
3. Agglomerative clustering (complete linkage by default)
4. Cut the tree into max(1, n_covariates // 2) clusters

The cluster count is a fixed heuristic (half the covariates), not chosen from
the data's own structure.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, linkage
from scipy.spatial.distance import squareform

from outbreak_covariates.common.errors import EmptyClusterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterAssignment:
    """Covariate -> cluster id, ids contiguous from 1."""
    assignment: Mapping[str, int]
    n_requested: int
    method: str = "complete"
    dropped: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def covariates(self) -> List[str]:
        return list(self.assignment.keys())

    @property
    def n_clusters(self) -> int:
        return len(set(self.assignment.values()))

    def members(self, cluster_id: int) -> Tuple[str, ...]:
        return tuple(c for c, k in self.assignment.items() if k == cluster_id)

    def clusters(self) -> Dict[int, Tuple[str, ...]]:
        """Cluster id -> member covariates, in id order.

        Only ids the cut actually produced are listed; a tied cut may
        return fewer clusters than ``n_requested``.
        """
        out: Dict[int, List[str]] = {}
        for cov, k in self.assignment.items():
            out.setdefault(k, []).append(cov)
        return {k: tuple(out[k]) for k in sorted(out)}

    def to_frame(self, labels: Optional[Mapping[str, str]] = None) -> pd.DataFrame:
        labels = labels or {}
        rows = [
            {'covariate': c, 'label': labels.get(c, c), 'cluster_id': k}
            for c, k in self.assignment.items()
        ]
        return pd.DataFrame(rows, columns=['covariate', 'label', 'cluster_id'])


def n_clusters_for(n_covariates: int) -> int:
    """Half the covariate count (integer division), at least 1."""
    if n_covariates < 1:
        raise ValueError("At least one covariate is required for clustering")
    return max(1, n_covariates // 2)


def correlation_distance(corr: pd.DataFrame) -> pd.DataFrame:
    """
    Euclidean distance between the rows of a correlation matrix.

    Coordinates that are NaN in either row are skipped and the sum of
    squares is scaled up by p / p_present, matching R's dist(). Pairs with
    no shared defined coordinate get NaN.

    Args:
        corr: Square correlation matrix

    Returns:
        Square symmetric distance DataFrame with zero diagonal
    """
    arr = corr.to_numpy(dtype=float)
    n, p = arr.shape
    dist = np.full((n, n), np.nan)

    for i in range(n):
        dist[i, i] = 0.0
        for j in range(i + 1, n):
            diff = arr[i] - arr[j]
            present = ~np.isnan(diff)
            k = int(present.sum())
            if k == 0:
                continue
            d = np.sqrt(np.sum(diff[present] ** 2) * p / k)
            dist[i, j] = dist[j, i] = d

    return pd.DataFrame(dist, index=corr.index, columns=corr.index)


def drop_undefined_covariates(corr: pd.DataFrame) -> Tuple[pd.DataFrame, List[str]]:
    """Remove covariates whose off-diagonal correlations are all NaN."""
    arr = corr.to_numpy(dtype=float).copy()
    np.fill_diagonal(arr, np.nan)
    if arr.shape[0] == 1:
        # A lone covariate has nothing to correlate with; keep it if its
        # own variance is defined.
        keep = ~np.isnan(np.diag(corr.to_numpy(dtype=float)))
    else:
        keep = ~np.isnan(arr).all(axis=1)

    dropped = [c for c, k in zip(corr.index, keep) if not k]
    kept = [c for c, k in zip(corr.index, keep) if k]
    return corr.loc[kept, kept], dropped


def _renumber_by_first_appearance(labels: np.ndarray) -> List[int]:
    mapping: Dict[int, int] = {}
    out = []
    for lab in labels:
        if lab not in mapping:
            mapping[lab] = len(mapping) + 1
        out.append(mapping[lab])
    return out


def cluster_covariates(
    corr: pd.DataFrame,
    n_clusters: Optional[int] = None,
    method: str = "complete"
) -> ClusterAssignment:
    """
    Cluster covariates on their correlation profiles and cut the tree.

    Args:
        corr: Covariate correlation matrix
        n_clusters: Number of clusters; default n_clusters_for(n_covariates)
        method: scipy linkage method

    Returns:
        ClusterAssignment (ids numbered by first appearance in corr order)
    """
    usable, dropped = drop_undefined_covariates(corr)
    if dropped:
        logger.warning("Dropping covariates with undefined correlations: %s", dropped)

    names = list(usable.index)
    if not names:
        raise ValueError("No covariate has a defined correlation profile")

    k = n_clusters if n_clusters is not None else n_clusters_for(len(names))
    if k < 1:
        raise ValueError(f"n_clusters must be >= 1, got {k}")
    k = min(k, len(names))

    if len(names) == 1:
        return ClusterAssignment({names[0]: 1}, n_requested=1, method=method,
                                 dropped=tuple(dropped))

    dist = correlation_distance(usable).to_numpy()
    if np.isnan(dist).any():
        finite_max = np.nanmax(dist)
        logger.warning(
            "%d covariate pairs share no defined correlation; treating them as maximally distant",
            int(np.isnan(dist).sum() // 2),
        )
        dist = np.where(np.isnan(dist), finite_max, dist)

    Z = linkage(squareform(dist, checks=False), method=method)
    raw = fcluster(Z, t=k, criterion='maxclust')
    ids = _renumber_by_first_appearance(raw)

    assignment = ClusterAssignment(
        dict(zip(names, ids)), n_requested=k, method=method, dropped=tuple(dropped)
    )
    if assignment.n_clusters < k:
        logger.warning(
            "Tree cut produced %d clusters, %d requested", assignment.n_clusters, k
        )
    return assignment


def nonempty_clusters(clusters: Mapping[int, Sequence[str]]) -> Dict[int, Tuple[str, ...]]:
    """
    Validate per-cluster covariate lists before formula enumeration.

    Raises:
        EmptyClusterError: if any cluster has no covariates
    """
    if not clusters:
        raise EmptyClusterError([])
    empty = [k for k, members in clusters.items() if len(members) == 0]
    if empty:
        raise EmptyClusterError(empty)
    return {k: tuple(v) for k, v in clusters.items()}
