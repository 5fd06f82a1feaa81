"""
Tests for parameter validation in SPBFS.
"""

import numpy as np
import pytest

from spbfs import InvalidParameterError, get_selected_features, validate_parameters


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"num_iterations": 0}, "num_iterations"),
        ({"num_iterations": 1001}, "num_iterations"),
        ({"num_iterations": 10.5}, "num_iterations must be an integer"),
        ({"num_random_variables_for_matching": 0}, "num_random_variables_for_matching"),
        ({"num_random_variables_for_matching": 9}, "num_random_variables_for_matching"),
        ({"final_selection_threshold": -0.1}, "final_selection_threshold"),
        ({"final_selection_threshold": 1.5}, "final_selection_threshold"),
        ({"caliper_value": 2}, "caliper_value"),
        ({"m_value": 0}, "m_value"),
        ({"m_value": 11}, "m_value"),
        ({"m_value": 1.5}, "m_value must be an integer"),
        ({"p_value_threshold": -1e-3}, "p_value_threshold"),
        ({"p_value_threshold": float("nan")}, "p_value_threshold"),
        ({"verbose": 2}, "verbose"),
        ({"num_iterations": True}, "num_iterations"),
        ({"caliper_value": "0.1"}, "caliper_value"),
        ({"random_state": -1}, "random_state"),
        ({"n_jobs": 0}, "n_jobs"),
        ({"categorical_features": ["nope"]}, "categorical_features"),
        ({"on_fit_error": "skip"}, "on_fit_error"),
        ({"max_resample_attempts": 0}, "max_resample_attempts"),
    ],
)
def test_out_of_range_parameters(synthetic_df, feature_names, overrides, message):
    """Test that each out-of-range parameter is rejected by name."""
    with pytest.raises(InvalidParameterError, match=message):
        validate_parameters(synthetic_df, feature_names, "outcome", **overrides)


def test_defaults_are_valid(synthetic_df, feature_names):
    """Test that the documented defaults pass validation."""
    validate_parameters(synthetic_df, feature_names, "outcome")


@pytest.mark.parametrize(
    "overrides",
    [
        {"num_iterations": 1},
        {"num_iterations": 1000},
        {"num_iterations": 50.0},
        {"num_random_variables_for_matching": 8},
        {"final_selection_threshold": 0},
        {"final_selection_threshold": 1},
        {"caliper_value": 0},
        {"m_value": 10},
        {"m_value": np.int64(3)},
        {"p_value_threshold": 1.0},
        {"verbose": 1},
        {"verbose": True},
        {"random_state": 0},
        {"n_jobs": -1},
    ],
)
def test_boundary_values_accepted(synthetic_df, feature_names, overrides):
    """Test that inclusive range boundaries are accepted."""
    validate_parameters(synthetic_df, feature_names, "outcome", **overrides)


def test_missing_columns(synthetic_df, feature_names):
    """Test that unknown feature or outcome columns are rejected."""
    with pytest.raises(InvalidParameterError, match="not found"):
        validate_parameters(synthetic_df, feature_names + ["missing"], "outcome")
    with pytest.raises(InvalidParameterError, match="not found"):
        validate_parameters(synthetic_df, feature_names, "label")


def test_feature_names_shape(synthetic_df):
    """Test empty, duplicated and string feature_names."""
    with pytest.raises(InvalidParameterError, match="at least one"):
        validate_parameters(synthetic_df, [], "outcome")
    with pytest.raises(InvalidParameterError, match="duplicates"):
        validate_parameters(synthetic_df, ["x1", "x1"], "outcome")
    with pytest.raises(InvalidParameterError, match="not a string"):
        validate_parameters(synthetic_df, "x1", "outcome")


def test_outcome_not_a_feature(synthetic_df, feature_names):
    """Test that the outcome cannot be listed as a feature."""
    with pytest.raises(InvalidParameterError, match="cannot also be a feature"):
        validate_parameters(synthetic_df, feature_names + ["outcome"], "outcome")


def test_df_must_be_a_table(feature_names):
    """Test that a non-DataFrame df is rejected by name."""
    with pytest.raises(InvalidParameterError, match="df must be"):
        validate_parameters([[1, 0]], feature_names, "outcome")


def test_get_selected_features_rejects_non_table():
    """Test that the entry point reports a bad df as a parameter error."""
    with pytest.raises(InvalidParameterError, match="df must be"):
        get_selected_features([[1, 0]], ["a"], "y")
