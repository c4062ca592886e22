#!/usr/bin/env python3
"""
Experiment 02: Covariate Correlation and Clusters

- Pairwise-complete Pearson correlation among covariates
- Attack rate vs. each covariate (r, p-value)
- Hierarchical clustering of correlation profiles, cut at half the
  covariate count

Output: results/model_search/correlation_matrix.csv,
        outcome_correlations.csv, cluster_assignment.csv,
        results/figures/correlation_heatmap.png, covariate_dendrogram.png

Usage:
    python experiments/02_correlation_clusters.py
"""
import sys
import argparse
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from scipy.cluster.hierarchy import dendrogram, linkage
from scipy.spatial.distance import squareform

from outbreak_covariates.config import load_config, get_project_root
from outbreak_covariates.data.loader import load_dataset_from_config
from outbreak_covariates.features.correlation import (
    covariate_correlation,
    outcome_correlations,
    undefined_pairs,
)
from outbreak_covariates.features.clustering import (
    cluster_covariates,
    correlation_distance,
    drop_undefined_covariates,
)


def plot_heatmap(corr, labels, path):
    fig, ax = plt.subplots(figsize=(10, 9))
    im = ax.imshow(corr.to_numpy(), cmap="RdBu_r", vmin=-1, vmax=1)
    names = [labels.get(c, c) for c in corr.index]
    ax.set_xticks(range(len(names)))
    ax.set_yticks(range(len(names)))
    ax.set_xticklabels(names, rotation=90, fontsize=7)
    ax.set_yticklabels(names, fontsize=7)
    fig.colorbar(im, ax=ax, shrink=0.8, label="Pearson r")
    fig.tight_layout()
    fig.savefig(path, dpi=130)
    plt.close(fig)


def plot_dendrogram(corr, labels, method, n_clusters, path):
    usable, _ = drop_undefined_covariates(corr)
    if len(usable) < 2:
        return
    dist = correlation_distance(usable).to_numpy()
    dist = np.where(np.isnan(dist), np.nanmax(dist), dist)
    Z = linkage(squareform(dist, checks=False), method=method)

    fig, ax = plt.subplots(figsize=(10, 5))
    # Links below the merge that would leave n_clusters - 1 groups get colours
    threshold = Z[-(n_clusters - 1), 2] if n_clusters > 1 else None
    dendrogram(Z, labels=[labels.get(c, c) for c in usable.index],
               leaf_rotation=90, color_threshold=threshold, ax=ax)
    ax.set_ylabel("Distance between correlation profiles")
    fig.tight_layout()
    fig.savefig(path, dpi=130)
    plt.close(fig)


def main():
    parser = argparse.ArgumentParser(description="Covariate correlation and clustering")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    root = get_project_root()
    cfg = load_config(str(root / args.config))

    print("=" * 60)
    print("OUTBREAK COVARIATES - CORRELATION & CLUSTERS")
    print("=" * 60)

    data = load_dataset_from_config(cfg)
    print(f"\n  → {data.n_observations} outbreaks, {len(data.covariates)} covariates")

    corr = covariate_correlation(data.frame, data.covariates)
    missing_pairs = undefined_pairs(corr)
    if missing_pairs:
        print(f"  ⚠ {len(missing_pairs)} covariate pairs have undefined correlation")

    outcome_corr = outcome_correlations(
        data.frame, data.outcome, data.covariates, labels=data.labels
    )
    print(f"\n{'Covariate':<30} {'r':>8} {'p':>10} {'n':>6}")
    print("-" * 58)
    for _, row in outcome_corr.sort_values('r', key=abs, ascending=False).iterrows():
        print(f"{row['label'][:30]:<30} {row['r']:>8.3f} {row['p_value']:>10.4f} {row['n']:>6}")

    method = cfg.get('clustering', {}).get('method', 'complete')
    clusters = cluster_covariates(corr, method=method)

    print(f"\nClusters: {clusters.n_clusters} (method={method})")
    for cluster_id, members in clusters.clusters().items():
        print(f"  {cluster_id:>2}: {', '.join(data.label(m) for m in members)}")

    results_dir = root / cfg['output']['results_dir']
    figures_dir = root / cfg['output']['figures_dir']
    results_dir.mkdir(parents=True, exist_ok=True)
    figures_dir.mkdir(parents=True, exist_ok=True)

    corr.to_csv(results_dir / 'correlation_matrix.csv')
    outcome_corr.to_csv(results_dir / 'outcome_correlations.csv', index=False)
    clusters.to_frame(data.labels).to_csv(results_dir / 'cluster_assignment.csv', index=False)

    plot_heatmap(corr, data.labels, figures_dir / 'correlation_heatmap.png')
    plot_dendrogram(corr, data.labels, method, clusters.n_requested,
                    figures_dir / 'covariate_dendrogram.png')

    print(f"\n✓ Results saved to {results_dir}")


if __name__ == "__main__":
    main()
