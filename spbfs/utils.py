"""
Shared utility functions for SPBFS.

This module contains column-type discovery, design matrix construction and
the two-group summary statistics used across multiple modules.
"""

from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from .errors import InvalidParameterError


def _to_pandas(df) -> pd.DataFrame:
    """Collect Spark-style frames to pandas; pass pandas frames through."""
    if isinstance(df, pd.DataFrame):
        return df
    if hasattr(df, "toPandas"):
        return df.toPandas()
    raise InvalidParameterError(
        f"df must be a pandas DataFrame or provide toPandas(), got {type(df).__name__}"
    )


def _is_categorical_series(series: pd.Series) -> bool:
    """Check whether a column holds categorical (non-numeric) values."""
    return (
        isinstance(series.dtype, pd.CategoricalDtype)
        or pd.api.types.is_bool_dtype(series)
        or pd.api.types.is_object_dtype(series)
        or pd.api.types.is_string_dtype(series)
    )


def _discover_categorical_columns(
    df: pd.DataFrame,
    feature_names: Iterable[str],
    categorical_features: Optional[Iterable[str]] = None,
) -> List[str]:
    """Find the categorical features by dtype, plus any listed explicitly."""
    explicit = set(categorical_features or [])
    return [
        c for c in feature_names
        if c in explicit or _is_categorical_series(df[c])
    ]


def _indicator_level(values: pd.Series):
    """Level whose proportion summarises a categorical column (last in sorted order)."""
    levels = sorted(pd.unique(values), key=str)
    return levels[-1]


def build_design_matrix(
    df: pd.DataFrame,
    features: List[str],
    categorical_cols: Optional[List[str]] = None,
) -> np.ndarray:
    """
    Build an explicit design matrix with an intercept column.

    Continuous columns are used as floats; categorical columns are one-hot
    encoded with the first level dropped (treatment contrasts).

    Parameters
    ----------
    df : pd.DataFrame
        Input data
    features : List[str]
        Columns to include, in order
    categorical_cols : Optional[List[str]]
        Columns to treat as categorical

    Returns
    -------
    np.ndarray
        Float matrix of shape (n_rows, 1 + n_encoded_columns)
    """
    categorical_cols = set(categorical_cols or [])
    blocks = [np.ones((len(df), 1))]
    for col in features:
        if col in categorical_cols:
            dummies = pd.get_dummies(
                df[col].astype(str), prefix=col, drop_first=True, dtype=float
            )
            blocks.append(dummies.to_numpy())
        else:
            blocks.append(df[col].to_numpy(dtype=float).reshape(-1, 1))
    return np.hstack(blocks)


def compute_smd(case_values: np.ndarray, control_values: np.ndarray) -> float:
    """
    Standardized mean difference of cases versus controls.

    The difference in means is scaled by the pooled SD, sqrt((s1^2 + s2^2) / 2).
    Returns NaN if either group has fewer than two values and 0.0 if both
    groups are constant.
    """
    cases = np.asarray(case_values, dtype=float)
    controls = np.asarray(control_values, dtype=float)
    if min(cases.size, controls.size) < 2:
        return np.nan
    pooled_sd = np.sqrt((cases.var(ddof=1) + controls.var(ddof=1)) / 2)
    if pooled_sd < 1e-10:
        return 0.0
    return float((cases.mean() - controls.mean()) / pooled_sd)


def compute_ratio_of_means(case_mean: float, control_mean: float) -> float:
    """
    Compute the ratio of the case mean to the control mean.

    Returns inf (signed) for a zero control mean and NaN when both are zero.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(case_mean) / np.float64(control_mean))
