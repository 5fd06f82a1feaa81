"""
Parameter validation for SPBFS.

All range checks happen once, before the selection loop starts. The core
selection routines never re-check these constraints.
"""

import numbers
from typing import Iterable, Optional

import pandas as pd

from .errors import InvalidParameterError


def _in_range(value, low: float, high: float) -> bool:
    return low <= value <= high


def _check_real(name: str, value, low: float, high: float) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameterError(
            f"{name} must be a number between {low} and {high}, got {value!r}"
        )
    if not _in_range(value, low, high):
        raise InvalidParameterError(
            f"{name} must be between {low} and {high}, got {value}"
        )


def _check_integer(name: str, value, low: int, high: int) -> None:
    _check_real(name, value, low, high)
    if value % 1 != 0:
        raise InvalidParameterError(f"{name} must be an integer, got {value}")


def validate_parameters(
    df: pd.DataFrame,
    feature_names: Iterable[str],
    outcome_var_name: str,
    num_iterations=100,
    num_random_variables_for_matching=3,
    final_selection_threshold=0.5,
    caliper_value=0.1,
    m_value=1,
    p_value_threshold=0.001,
    verbose=0,
    random_state: Optional[int] = None,
    n_jobs: int = 1,
    categorical_features: Optional[Iterable[str]] = None,
    on_fit_error: str = "raise",
    max_resample_attempts: int = 10,
) -> None:
    """
    Validate get_selected_features() arguments.

    Raises
    ------
    InvalidParameterError
        If any argument violates its documented constraint. The message names
        the offending parameter.
    """
    if not isinstance(df, pd.DataFrame):
        raise InvalidParameterError(
            f"df must be a pandas DataFrame, got {type(df).__name__}"
        )
    if isinstance(feature_names, str):
        raise InvalidParameterError("feature_names must be a list of column names, not a string")
    feature_names = list(feature_names)
    if len(feature_names) == 0:
        raise InvalidParameterError("feature_names must contain at least one column name")
    if len(set(feature_names)) != len(feature_names):
        raise InvalidParameterError(f"feature_names contains duplicates: {feature_names}")

    missing = [c for c in feature_names + [outcome_var_name] if c not in df.columns]
    if missing:
        raise InvalidParameterError(f"Columns not found in DataFrame: {missing}")
    if outcome_var_name in feature_names:
        raise InvalidParameterError(
            f"Outcome column {outcome_var_name!r} cannot also be a feature"
        )

    _check_integer("num_iterations", num_iterations, 1, 1000)
    _check_integer(
        "num_random_variables_for_matching",
        num_random_variables_for_matching,
        1,
        len(feature_names),
    )
    _check_real("final_selection_threshold", final_selection_threshold, 0, 1)
    _check_real("caliper_value", caliper_value, 0, 1)
    _check_integer("m_value", m_value, 1, 10)
    _check_real("p_value_threshold", p_value_threshold, 0, 1)
    if verbose not in (0, 1):
        raise InvalidParameterError(f"verbose must be 0 or 1, got {verbose!r}")

    if random_state is not None and (
        isinstance(random_state, bool)
        or not isinstance(random_state, numbers.Integral)
        or random_state < 0
    ):
        raise InvalidParameterError(
            f"random_state must be None or a non-negative integer, got {random_state!r}"
        )
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral) or n_jobs == 0:
        raise InvalidParameterError(f"n_jobs must be a non-zero integer, got {n_jobs!r}")
    if categorical_features is not None:
        unknown = [c for c in categorical_features if c not in feature_names]
        if unknown:
            raise InvalidParameterError(
                f"categorical_features must be a subset of feature_names, unknown: {unknown}"
            )
    if on_fit_error not in ("raise", "resample"):
        raise InvalidParameterError(
            f"on_fit_error must be 'raise' or 'resample', got {on_fit_error!r}"
        )
    if (
        isinstance(max_resample_attempts, bool)
        or not isinstance(max_resample_attempts, numbers.Integral)
        or max_resample_attempts < 1
    ):
        raise InvalidParameterError(
            f"max_resample_attempts must be >= 1, got {max_resample_attempts!r}"
        )
