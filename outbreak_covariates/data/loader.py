"""
Data Loader for outbreak covariate modeling - BLOCK 1: Data Acquisition

This module handles:
1. Loading the outbreak table (one row per outbreak: identifiers,
   attack rate, covariates)
2. Loading the covariate metadata table (column name -> display label)
3. Validating that every column the pipeline depends on is present
"""
import pandas as pd
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
from rapidfuzz import fuzz, process

from outbreak_covariates.common.errors import MissingDataError
from outbreak_covariates.features.feature_sets import select_covariate_columns

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OutbreakData:
    """Loaded outbreak records plus the column roles used downstream."""
    frame: pd.DataFrame
    outcome: str
    id_columns: List[str]
    covariates: List[str]
    labels: Dict[str, str] = field(default_factory=dict)

    def label(self, column: str) -> str:
        return self.labels.get(column, column)

    @property
    def n_observations(self) -> int:
        return len(self.frame)


def suggest_columns(
    missing: str,
    available: Sequence[str],
    limit: int = 3,
    score_threshold: int = 60
) -> List[str]:
    """
    Fuzzy-match a missing column name against the columns that are present.

    Args:
        missing: Column name that was expected
        available: Column names actually found
        limit: Maximum number of suggestions
        score_threshold: Minimum fuzzy match score

    Returns:
        Close column names, best first
    """
    matches = process.extract(missing, list(available), scorer=fuzz.ratio, limit=limit)
    return [name for name, score, _ in matches if score >= score_threshold]


def require_columns(
    df: pd.DataFrame,
    columns: Sequence[str],
    source: Optional[str] = None
) -> None:
    """Raise MissingDataError for the first required column not in df."""
    present = set(df.columns)
    for col in columns:
        if col not in present:
            raise MissingDataError(
                col, source=source, suggestions=suggest_columns(col, df.columns)
            )


def infer_covariates(
    df: pd.DataFrame,
    outcome: str,
    id_columns: Sequence[str],
    date_column: Optional[str] = None,
    exclude: Sequence[str] = ()
) -> List[str]:
    """Numeric columns that are not identifiers, outcome, date or excluded."""
    non_covariates = set(id_columns) | {outcome} | set(exclude)
    if date_column:
        non_covariates.add(date_column)
    candidates = [c for c in df.columns if c not in non_covariates]
    return select_covariate_columns(df[candidates])


def load_metadata(path: PathLike, delimiter: str = ",") -> Dict[str, str]:
    """
    Load covariate metadata table.

    The table has a header row and two columns: column name, display label.
    Extra columns are ignored.

    Args:
        path: Path to metadata file
        delimiter: Field separator

    Returns:
        Mapping of column name to display label
    """
    df = pd.read_csv(path, sep=delimiter, dtype=str)
    if df.shape[1] < 2:
        raise MissingDataError("label", source=str(path))

    names = df.iloc[:, 0].str.strip()
    labels = df.iloc[:, 1].fillna("").str.strip()
    # Blank labels fall back to the column name
    labels = labels.where(labels != "", names)

    return dict(zip(names, labels))


def load_outbreaks(
    path: PathLike,
    outcome: str = "attack_rate",
    id_columns: Sequence[str] = ("location", "start_date"),
    covariates: Optional[Sequence[str]] = None,
    date_column: Optional[str] = "start_date",
    exclude: Sequence[str] = (),
    delimiter: str = ","
) -> pd.DataFrame:
    """Load the outbreak table with numeric outcome and covariate columns."""
    df, _ = read_outbreaks(
        path, outcome, id_columns, covariates, date_column, exclude, delimiter
    )
    return df


def read_outbreaks(
    path: PathLike,
    outcome: str = "attack_rate",
    id_columns: Sequence[str] = ("location", "start_date"),
    covariates: Optional[Sequence[str]] = None,
    date_column: Optional[str] = "start_date",
    exclude: Sequence[str] = (),
    delimiter: str = ","
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Load the outbreak table and coerce modeled columns to numeric.

    Args:
        path: Path to the outbreak file
        outcome: Outcome column (attack rate)
        id_columns: Identifying columns that must be present
        covariates: Covariate columns; None selects every numeric column that
            is not an identifier, outcome or excluded column
        date_column: Column parsed to datetime (must be one of id_columns
            or otherwise present), or None
        exclude: Further non-covariate columns (e.g. a category column)
        delimiter: Field separator

    Returns:
        (DataFrame with numeric outcome and covariate columns, covariate list)
    """
    source = str(path)
    df = pd.read_csv(path, sep=delimiter)
    df.columns = [str(c).strip() for c in df.columns]

    required = list(id_columns) + [outcome]
    if covariates is not None:
        required += list(covariates)
    if date_column:
        required.append(date_column)
    require_columns(df, required, source=source)

    if date_column:
        df[date_column] = pd.to_datetime(df[date_column], errors='coerce')

    df[outcome] = pd.to_numeric(df[outcome], errors='coerce')

    if covariates is None:
        covariates = infer_covariates(df, outcome, id_columns, date_column, exclude)

    for col in covariates:
        df[col] = pd.to_numeric(df[col], errors='coerce')

    negative = (df[outcome] < 0).sum()
    if negative:
        raise ValueError(f"{negative} rows have a negative {outcome} in {source}")

    return df, list(covariates)


def load_dataset(
    outbreaks_path: PathLike,
    metadata_path: Optional[PathLike] = None,
    outcome: str = "attack_rate",
    id_columns: Sequence[str] = ("location", "start_date"),
    covariates: Optional[Sequence[str]] = None,
    date_column: Optional[str] = "start_date",
    category_column: Optional[str] = None,
    delimiter: str = ","
) -> OutbreakData:
    """
    Build the read-only dataset the pipeline runs on.

    Args:
        outbreaks_path: Path to the outbreak table
        metadata_path: Path to the covariate metadata table (optional)
        outcome: Outcome column
        id_columns: Identifying columns
        covariates: Explicit covariate list, or None to infer
        date_column: Outbreak start date column
        category_column: Grouping column excluded from covariates
        delimiter: Field separator for both tables

    Returns:
        OutbreakData
    """
    exclude = [category_column] if category_column else []
    df, covariates = read_outbreaks(
        outbreaks_path,
        outcome=outcome,
        id_columns=id_columns,
        covariates=covariates,
        date_column=date_column,
        exclude=exclude,
        delimiter=delimiter,
    )

    if not covariates:
        raise MissingDataError("<covariates>", source=str(outbreaks_path))

    labels = load_metadata(metadata_path, delimiter=delimiter) if metadata_path else {}

    return OutbreakData(
        frame=df,
        outcome=outcome,
        id_columns=list(id_columns),
        covariates=list(covariates),
        labels=labels,
    )


def load_dataset_from_config(config: Dict, root: Optional[Path] = None) -> OutbreakData:
    """Load the dataset described by the `data` section of a config dict."""
    from outbreak_covariates.config import get_data_path

    data_cfg = config.get('data', {})
    if 'outbreaks' not in data_cfg:
        raise ValueError("config['data']['outbreaks'] must be provided")

    def resolve(p):
        return (root / p) if root is not None else get_data_path(p)

    metadata = data_cfg.get('metadata')
    metadata_path = resolve(metadata) if metadata else None
    if metadata_path is not None and not Path(metadata_path).exists():
        metadata_path = None

    return load_dataset(
        resolve(data_cfg['outbreaks']),
        metadata_path=metadata_path,
        outcome=data_cfg.get('outcome', 'attack_rate'),
        id_columns=data_cfg.get('id_columns', ['location', 'start_date']),
        covariates=data_cfg.get('covariates'),
        date_column=data_cfg.get('date_column', 'start_date'),
        category_column=data_cfg.get('category_column'),
        delimiter=data_cfg.get('delimiter', ','),
    )


def complete_cases(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Rows with no missing value in any of `columns`."""
    subset = df[list(columns)].replace([np.inf, -np.inf], np.nan)
    return df.loc[subset.notna().all(axis=1)]
