#!/usr/bin/env python3
"""
Experiment 03: Random Forest Model Search

Full pipeline:
- Correlation + clustering of covariates
- One candidate formula per combination of cluster representatives
- Repeated 10-fold CV random forest per formula (mtry = round(sqrt(p)))
- Held-out RMSE / R² / MAE, best model by R²
- Importances and partial dependence of the best model

Output: results/model_search/*.csv, best_model.json, best_model.pkl

Usage:
    python experiments/03_model_search.py
    python experiments/03_model_search.py --config config/config_default.yaml
"""
import sys
import argparse
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from outbreak_covariates.common.errors import AnalysisError
from outbreak_covariates.config import load_config, get_project_root
from outbreak_covariates.data.loader import load_dataset_from_config
from outbreak_covariates.evaluation.metrics import print_metrics
from outbreak_covariates.models.search import count_formulas
from outbreak_covariates.pipeline import run_pipeline, write_outputs


def main():
    parser = argparse.ArgumentParser(description="Random forest formula search")
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
    print("OUTBREAK COVARIATES - MODEL SEARCH")
    print("=" * 60)

    try:
        data = load_dataset_from_config(cfg)
        print(f"\n  → {data.n_observations} outbreaks, {len(data.covariates)} covariates")
        result = run_pipeline(data, cfg)
    except AnalysisError as e:
        raise SystemExit(f"✗ {e}")

    clusters = result.clusters.clusters()
    print(f"\nClusters: {result.clusters.n_clusters}, candidates: {count_formulas(clusters)}")
    print(f"Train/test: {len(result.split.train)}/{len(result.split.test)} rows")
    if result.search.failures:
        print(f"  ⚠ {len(result.search.failures)} formulas skipped")

    print("\n" + "=" * 60)
    print("TOP FORMULAS (held-out)")
    print("=" * 60)
    print(f"\n{'#':>3} {'R²':>8} {'RMSE':>10} {'MAE':>10}  Formula")
    print("-" * 60)
    for _, row in result.ranking.head(10).iterrows():
        print(f"{row['rank']:>3} {row['r2']:>8.4f} {row['rmse']:>10.4f} {row['mae']:>10.4f}  {row['formula']}")

    best = result.best
    print(f"\nBest model: {best.formula}")
    print_metrics(best.fitted.test_metrics, title="Held-out metrics")

    print(f"\n{'Covariate':<30} {'%IncMSE':>10} {'IncNodePurity':>15}")
    print("-" * 57)
    wide = best.importances.pivot(index='label', columns='metric_name', values='value')
    for label, row in wide.sort_values('pct_inc_mse', ascending=False).iterrows():
        print(f"{label[:30]:<30} {row['pct_inc_mse']:>10.2f} {row['inc_node_purity']:>15.4f}")

    results_dir = root / cfg['output']['results_dir']
    written = write_outputs(result, results_dir)
    best.fitted.model.save(results_dir / 'best_model.pkl')

    print(f"\n✓ {len(written) + 1} files saved to {results_dir}")

    return result


if __name__ == "__main__":
    main()
