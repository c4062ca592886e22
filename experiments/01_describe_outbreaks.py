#!/usr/bin/env python3
"""
Experiment 01: Describe Outbreaks

Distribution tables and figures for the outbreak dataset:
- Outbreak counts by category (e.g. country)
- Outbreak counts by year of start date
- Per-covariate summaries and histograms
- Attack-rate histogram

Output: results/figures/*.png, results/model_search/distributions/*.csv

Usage:
    python experiments/01_describe_outbreaks.py
    python experiments/01_describe_outbreaks.py --config config/config_default.yaml
"""
import sys
import argparse
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from outbreak_covariates.config import load_config, get_project_root
from outbreak_covariates.data.loader import load_dataset_from_config
from outbreak_covariates.reporting.distributions import (
    count_by_category,
    count_by_period,
    covariate_summary,
    covariate_histogram,
)


def plot_bar(table, x_col, y_col, title, path):
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.bar(table[x_col].astype(str), table[y_col], color="#2E86AB")
    ax.set_title(title)
    ax.set_ylabel("Outbreaks")
    ax.tick_params(axis='x', rotation=60)
    fig.tight_layout()
    fig.savefig(path, dpi=130)
    plt.close(fig)


def plot_histogram(hist, title, path):
    fig, ax = plt.subplots(figsize=(6, 4))
    widths = hist['bin_right'] - hist['bin_left']
    ax.bar(hist['bin_left'], hist['count'], width=widths, align='edge',
           color="#44BBA4", edgecolor="white")
    ax.set_title(title)
    ax.set_ylabel("Count")
    fig.tight_layout()
    fig.savefig(path, dpi=130)
    plt.close(fig)


def main():
    parser = argparse.ArgumentParser(description="Describe outbreak distributions")
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
    print("OUTBREAK COVARIATES - DESCRIBE OUTBREAKS")
    print("=" * 60)

    data = load_dataset_from_config(cfg)
    df = data.frame
    print(f"\n  → {data.n_observations} outbreaks, {len(data.covariates)} covariates")

    figures_dir = root / cfg['output']['figures_dir']
    tables_dir = root / cfg['output']['results_dir'] / 'distributions'
    figures_dir.mkdir(parents=True, exist_ok=True)
    tables_dir.mkdir(parents=True, exist_ok=True)

    category = cfg['data'].get('category_column')
    if category and category in df.columns:
        by_cat = count_by_category(df, category)
        by_cat.to_csv(tables_dir / f'outbreaks_by_{category}.csv', index=False)
        plot_bar(by_cat, category, 'n_outbreaks', f"Outbreaks by {category}",
                 figures_dir / f'outbreaks_by_{category}.png')
        print(f"\nTop {category} values:")
        for _, row in by_cat.head(10).iterrows():
            print(f"  {row[category]:<25} {row['n_outbreaks']:>5}")

    date_col = cfg['data'].get('date_column')
    if date_col:
        by_year = count_by_period(df, date_col, period="year")
        by_year.to_csv(tables_dir / 'outbreaks_by_year.csv', index=False)
        plot_bar(by_year, 'period', 'n_outbreaks', "Outbreaks by start year",
                 figures_dir / 'outbreaks_by_year.png')
        print(f"\n  → {len(by_year)} years of outbreak starts")

    summary = covariate_summary(df, data.covariates, labels=data.labels)
    summary.to_csv(tables_dir / 'covariate_summary.csv', index=False)

    print(f"\n{'Covariate':<30} {'n':>6} {'missing':>8} {'median':>12}")
    print("-" * 60)
    for _, row in summary.iterrows():
        print(f"{row['label'][:30]:<30} {row['n']:>6} {row['n_missing']:>8} {row['median']:>12.3f}")

    for col in [data.outcome] + data.covariates:
        hist = covariate_histogram(df, col)
        if hist.empty:
            print(f"  ⚠ {col}: no values, histogram skipped")
            continue
        plot_histogram(hist, data.label(col), figures_dir / f'hist_{col}.png')

    print(f"\n✓ Tables saved to {tables_dir}")
    print(f"✓ Figures saved to {figures_dir}")


if __name__ == "__main__":
    main()
