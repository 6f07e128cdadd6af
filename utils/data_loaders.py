"""
Data loaders for the Palmer penguins dataset
Handles loading, missing-value imputation and z-score scaling
"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from logging_config import get_logger

logger = get_logger(__name__)


PENGUIN_COLUMNS = [
    "species",
    "island",
    "bill_length_mm",
    "bill_depth_mm",
    "flipper_length_mm",
    "body_mass_g",
    "sex",
    "year",
]

NUMERIC_COLUMNS = [
    "bill_length_mm",
    "bill_depth_mm",
    "flipper_length_mm",
    "body_mass_g",
    "year",
]

CATEGORICAL_COLUMNS = ["species", "island", "sex"]

# Numeric but an identifier of the sampling season, not a measurement
ID_LIKE_COLUMNS = ("year",)


def load_raw_penguins(path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """
    Load the penguins table, missing values included.

    Parameters
    ----------
    path : str or Path, optional
        CSV file with the penguin columns. If None the copy bundled with the
        ``palmerpenguins`` distribution is used.

    Returns
    -------
    pd.DataFrame
        Raw data with the columns in ``PENGUIN_COLUMNS`` order.

    Raises
    ------
    ValueError
        If any expected column is missing.
    """
    if path is None:
        from palmerpenguins import load_penguins

        data = load_penguins()
        source = "palmerpenguins"
    else:
        data = pd.read_csv(path, na_values=["NA", ""])
        source = str(path)

    missing = [c for c in PENGUIN_COLUMNS if c not in data.columns]
    if missing:
        raise ValueError(f"Dataset is missing required columns: {', '.join(missing)}")

    data = data[PENGUIN_COLUMNS].copy()
    for col in CATEGORICAL_COLUMNS:
        data[col] = data[col].astype(object)
    for col in NUMERIC_COLUMNS:
        data[col] = pd.to_numeric(data[col], errors="coerce")

    logger.info("Loaded %d penguin observations from %s", len(data), source)
    return data


def get_numeric_columns(
    data: pd.DataFrame,
    exclude: Sequence[str] = ID_LIKE_COLUMNS,
) -> List[str]:
    """Numeric columns of ``data`` in table order, minus ``exclude``."""
    categorical = set(get_categorical_columns(data))
    return [c for c in data.columns if c not in categorical and c not in exclude]


def get_categorical_columns(data: pd.DataFrame) -> List[str]:
    """Columns that are not numeric measurements (text, category, boolean)."""
    return [
        c for c in data.columns
        if not pd.api.types.is_numeric_dtype(data[c]) or pd.api.types.is_bool_dtype(data[c])
    ]


def impute_missing(data: pd.DataFrame) -> pd.DataFrame:
    """
    Replace missing values: numeric -> column median, categorical -> column mode.

    When several values tie for the mode the first in sorted order is used.
    A column with no observed values at all is left as it is.

    Parameters
    ----------
    data : pd.DataFrame
        Input table. Not modified.

    Returns
    -------
    pd.DataFrame
        Imputed copy.
    """
    clean = data.copy()

    cat_cols = get_categorical_columns(clean)
    numeric_cols = [c for c in clean.columns if c not in cat_cols]

    for col in numeric_cols:
        n_missing = int(clean[col].isna().sum())
        if n_missing == 0:
            continue
        if clean[col].notna().sum() == 0:
            logger.warning("Column '%s' has no observed values, left unimputed", col)
            continue
        median = clean[col].median()
        clean[col] = clean[col].fillna(median)
        logger.debug("Imputed %d values in '%s' with median %s", n_missing, col, median)

    for col in cat_cols:
        n_missing = int(clean[col].isna().sum())
        if n_missing == 0:
            continue
        modes = clean[col].mode()
        if modes.empty:
            logger.warning("Column '%s' has no observed values, left unimputed", col)
            continue
        clean[col] = clean[col].fillna(modes.iloc[0])
        logger.debug("Imputed %d values in '%s' with mode %s", n_missing, col, modes.iloc[0])

    return clean


def missing_value_summary(data: pd.DataFrame) -> pd.DataFrame:
    """
    Count missing values per column and show the value imputation would use.

    Returns
    -------
    pd.DataFrame
        Columns: ['Variable', 'Type', 'Missing', 'Imputed with']
    """
    cat_cols = set(get_categorical_columns(data))
    rows = []
    for col in data.columns:
        n_missing = int(data[col].isna().sum())
        if col not in cat_cols:
            kind = "numeric"
            fill = data[col].median() if data[col].notna().any() else np.nan
        else:
            kind = "categorical"
            modes = data[col].mode()
            fill = modes.iloc[0] if not modes.empty else np.nan
        rows.append({
            "Variable": col,
            "Type": kind,
            "Missing": n_missing,
            "Imputed with": fill if n_missing > 0 else None,
        })
    return pd.DataFrame(rows)


def scale_numeric(
    data: pd.DataFrame,
    columns: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Z-score normalize numeric columns with ``StandardScaler``.

    Parameters
    ----------
    data : pd.DataFrame
        Input table (must not contain NaN in ``columns``).
    columns : iterable of str, optional
        Columns to scale. Defaults to every measurement column.

    Returns
    -------
    pd.DataFrame
        Copy with ``columns`` replaced by their z-scores. Constant columns
        become 0.
    """
    columns = list(columns) if columns is not None else get_numeric_columns(data)
    scaled = data.copy()
    if not columns:
        return scaled
    values = data[columns].to_numpy(dtype=float)
    if np.isnan(values).any():
        raise ValueError("Cannot scale columns with missing values; impute first")
    scaled[columns] = StandardScaler().fit_transform(values)
    return scaled


def load_clean_penguins(path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """Raw penguins table with missing values imputed."""
    return impute_missing(load_raw_penguins(path))
