"""
End-to-end covariate modeling run.

Loader -> Correlation Engine -> Cluster Selector -> Model Search -> Model
Selector. Everything is computed in memory first; result files are written
only once the whole run has succeeded.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from outbreak_covariates.common.errors import InsufficientDataError
from outbreak_covariates.config import get_section
from outbreak_covariates.data.loader import OutbreakData
from outbreak_covariates.evaluation.cv import TrainTestSplit, split_train_test
from outbreak_covariates.evaluation.selection import BestModel, build_best_model, rank_models
from outbreak_covariates.features.clustering import ClusterAssignment, cluster_covariates
from outbreak_covariates.features.correlation import covariate_correlation, outcome_correlations
from outbreak_covariates.features.feature_sets import model_columns
from outbreak_covariates.models.search import SearchConfig, SearchResult, run_model_search

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything a report needs from one run."""
    correlation: pd.DataFrame
    outcome_correlation: pd.DataFrame
    clusters: ClusterAssignment
    split: TrainTestSplit
    search: SearchResult
    ranking: pd.DataFrame
    best: BestModel
    labels: Dict[str, str]


def run_pipeline(data: OutbreakData, config: Optional[Dict] = None) -> PipelineResult:
    """
    Run correlation, clustering, formula search and best-model selection.

    Args:
        data: Loaded outbreak dataset
        config: Full config dict (clustering/search/importance sections)

    Returns:
        PipelineResult
    """
    config = config or {}
    frame = data.frame

    corr = covariate_correlation(frame, data.covariates)
    outcome_corr = outcome_correlations(frame, data.outcome, data.covariates, labels=data.labels)

    clustering_cfg = get_section(config, 'clustering')
    clusters = cluster_covariates(
        corr,
        n_clusters=clustering_cfg.get('n_clusters'),
        method=clustering_cfg.get('method', 'complete'),
    )
    logger.info(
        "%d covariates -> %d clusters (%d dropped)",
        len(clusters.covariates), clusters.n_clusters, len(clusters.dropped),
    )

    search_cfg = get_section(config, 'search')
    split = split_train_test(
        frame,
        model_columns(data.outcome, clusters.covariates),
        train_fraction=search_cfg.get('train_fraction', 0.7),
        random_state=search_cfg.get('random_state', 42),
    )
    logger.info("Train/test split: %d / %d rows", len(split.train), len(split.test))

    search_config = SearchConfig.from_config(config)
    search = run_model_search(clusters.clusters(), data.outcome, split, search_config)
    if not search.fitted:
        raise InsufficientDataError(
            f"All {search.n_candidates} candidate formulas failed to fit; no model to select"
        )

    pdp_cfg = get_section(config, 'partial_dependence')
    best = build_best_model(
        search.fitted,
        split,
        labels=data.labels,
        n_repeats=search_config.importance_repeats,
        grid_resolution=pdp_cfg.get('grid_resolution', 20),
    )

    return PipelineResult(
        correlation=corr,
        outcome_correlation=outcome_corr,
        clusters=clusters,
        split=split,
        search=search,
        ranking=rank_models(search.fitted),
        best=best,
        labels=dict(data.labels),
    )


def convert_to_serializable(obj):
    if isinstance(obj, np.floating):
        return None if np.isnan(obj) else float(obj)
    elif isinstance(obj, float) and np.isnan(obj):
        return None
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {k: convert_to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_to_serializable(v) for v in obj]
    return obj


def write_outputs(result: PipelineResult, results_dir: Path) -> List[Path]:
    """
    Write result tables and the best-model summary.

    Returns:
        Paths written
    """
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)

    tables = {
        'correlation_matrix.csv': (result.correlation, True),
        'outcome_correlations.csv': (result.outcome_correlation, False),
        'cluster_assignment.csv': (result.clusters.to_frame(result.labels), False),
        'model_ranking.csv': (result.ranking, False),
        'importances.csv': (result.best.importances, False),
    }
    if result.best.partial_dependence is not None:
        tables['partial_dependence.csv'] = (result.best.partial_dependence, False)

    written = []
    for name, (table, keep_index) in tables.items():
        path = results_dir / name
        table.to_csv(path, index=keep_index)
        written.append(path)

    summary = {
        'timestamp': datetime.now().isoformat(),
        'n_covariates': len(result.correlation),
        'n_clusters': result.clusters.n_clusters,
        'dropped_covariates': list(result.clusters.dropped),
        'n_candidates': result.search.n_candidates,
        'n_fitted': len(result.search.fitted),
        'failures': [
            {'formula': str(f), 'reason': reason} for f, reason in result.search.failures
        ],
        'n_train': len(result.split.train),
        'n_test': len(result.split.test),
        'best_model': result.best.to_dict(),
    }
    summary_path = results_dir / 'best_model.json'
    with open(summary_path, 'w') as f:
        json.dump(convert_to_serializable(summary), f, indent=2)
    written.append(summary_path)

    return written
