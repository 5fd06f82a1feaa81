"""
Matched-group comparison ("Table 1") for SPBFS.

This module compares every covariate between the matched cases and the
matched controls and computes a univariate p-value for each.
"""

from typing import List, Optional

import numpy as np
import pandas as pd
from scipy import stats

from .matching import matched_groups
from .utils import _indicator_level, compute_ratio_of_means, compute_smd

# p-values below this are reported as 0
P_VALUE_FLOOR = 0.001

RESULT_COLUMNS = [
    "covariate",
    "type",
    "cases_mean",
    "cases_sd",
    "controls_mean",
    "controls_sd",
    "ratio_means",
    "smd",
    "test",
    "p_value",
    "n_cases",
    "n_controls",
    "flagged",
]


def compare_matched_groups(
    df: pd.DataFrame,
    pairs: pd.DataFrame,
    feature_names: List[str],
    categorical_cols: Optional[List[str]] = None,
    p_value_threshold: float = 0.001,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Compare each covariate between matched cases and matched controls.

    Every covariate in ``feature_names`` is tested, including those used to
    build the propensity model. Continuous covariates are summarised by mean
    and SD and compared with Welch's t-test; categorical covariates are
    summarised by the proportion of their indicator level and compared with
    a chi-square test of independence.

    Parameters
    ----------
    df : pd.DataFrame
        Input data
    pairs : pd.DataFrame
        Output from match_on_score()
    feature_names : List[str]
        Covariates to compare
    categorical_cols : Optional[List[str]]
        Covariates to treat as categorical
    p_value_threshold : float
        A covariate is flagged when its p-value is strictly below this
    verbose : bool
        If True, print the comparison table

    Returns
    -------
    pd.DataFrame
        One row per covariate with columns:
        - covariate, type ("continuous" or "categorical")
        - cases_mean, cases_sd, controls_mean, controls_sd
          (proportions and NaN SDs for categorical covariates)
        - ratio_means: cases_mean / controls_mean
        - smd: standardized mean difference
        - test: name of the test used
        - p_value: NaN when the test is undefined, 0.0 below P_VALUE_FLOOR
        - n_cases, n_controls: group sizes
        - flagged: p_value < p_value_threshold
    """
    categorical_cols = set(categorical_cols or [])
    groups = matched_groups(pairs)
    if groups is None:
        case_rows = df.iloc[[]]
        control_rows = df.iloc[[]]
    else:
        case_rows = df.iloc[groups[0]]
        control_rows = df.iloc[groups[1]]

    results = []
    for col in feature_names:
        if col in categorical_cols:
            result = _compare_categorical(case_rows[col], control_rows[col])
        else:
            result = _compare_continuous(
                case_rows[col].to_numpy(dtype=float),
                control_rows[col].to_numpy(dtype=float),
            )
        result["covariate"] = col
        result["n_cases"] = len(case_rows)
        result["n_controls"] = len(control_rows)
        results.append(result)

    table = pd.DataFrame(results, columns=RESULT_COLUMNS[:-1])
    table["p_value"] = table["p_value"].astype(float)
    table.loc[table["p_value"] < P_VALUE_FLOOR, "p_value"] = 0.0
    table["flagged"] = table["p_value"] < p_value_threshold

    if verbose:
        _print_comparison_table(table)

    return table


def _compare_continuous(case_values: np.ndarray, control_values: np.ndarray) -> dict:
    """Mean/SD summary and Welch two-sample t-test."""
    case_mean = np.mean(case_values) if len(case_values) else np.nan
    control_mean = np.mean(control_values) if len(control_values) else np.nan
    case_sd = np.std(case_values, ddof=1) if len(case_values) > 1 else np.nan
    control_sd = np.std(control_values, ddof=1) if len(control_values) > 1 else np.nan

    p_value = np.nan
    if len(case_values) > 1 and len(control_values) > 1 and (case_sd > 0 or control_sd > 0):
        p_value = float(stats.ttest_ind(case_values, control_values, equal_var=False).pvalue)

    return {
        "type": "continuous",
        "cases_mean": case_mean,
        "cases_sd": case_sd,
        "controls_mean": control_mean,
        "controls_sd": control_sd,
        "ratio_means": compute_ratio_of_means(case_mean, control_mean),
        "smd": compute_smd(case_values, control_values),
        "test": "welch_t",
        "p_value": p_value,
    }


def _compare_categorical(case_values: pd.Series, control_values: pd.Series) -> dict:
    """Indicator-level proportions and chi-square test of independence."""
    combined = pd.concat([case_values, control_values], ignore_index=True)
    if len(case_values) == 0 or len(control_values) == 0:
        case_prop = control_prop = np.nan
        smd = np.nan
        p_value = np.nan
    else:
        level = _indicator_level(combined)
        case_ind = (case_values == level).to_numpy(dtype=float)
        control_ind = (control_values == level).to_numpy(dtype=float)
        case_prop = case_ind.mean()
        control_prop = control_ind.mean()
        smd = compute_smd(case_ind, control_ind)

        group = np.r_[np.ones(len(case_values)), np.zeros(len(control_values))]
        table = pd.crosstab(group, combined.astype(str).to_numpy())
        p_value = np.nan
        if table.shape[1] > 1:
            # Yates' correction applies to 2x2 tables, as in R's chisq.test
            _, p_value, _, _ = stats.chi2_contingency(table.to_numpy(), correction=True)
            p_value = float(p_value)

    return {
        "type": "categorical",
        "cases_mean": case_prop,
        "cases_sd": np.nan,
        "controls_mean": control_prop,
        "controls_sd": np.nan,
        "ratio_means": compute_ratio_of_means(case_prop, control_prop),
        "smd": smd,
        "test": "chi_square",
        "p_value": p_value,
    }


def _format_summary(mean: float, sd: float, is_categorical: bool) -> str:
    if pd.isna(mean):
        return "-"
    if is_categorical:
        return f"{mean * 100:.1f}%"
    return f"{mean:.2f} ({sd:.2f})" if pd.notna(sd) else f"{mean:.2f}"


def _print_comparison_table(table: pd.DataFrame) -> None:
    """Print the matched-group comparison with one line per covariate."""
    n_cases = int(table["n_cases"].iloc[0]) if len(table) else 0
    n_controls = int(table["n_controls"].iloc[0]) if len(table) else 0

    print(f"\nMatched population (cases: {n_cases}, controls: {n_controls})")
    print("=" * 90)

    display_df = pd.DataFrame(
        {
            "Covariate": [
                f"{c} (%)" if t == "categorical" else f"{c} (mean (SD))"
                for c, t in zip(table["covariate"], table["type"])
            ],
            "Cases": [
                _format_summary(m, s, t == "categorical")
                for m, s, t in zip(table["cases_mean"], table["cases_sd"], table["type"])
            ],
            "Controls": [
                _format_summary(m, s, t == "categorical")
                for m, s, t in zip(table["controls_mean"], table["controls_sd"], table["type"])
            ],
            "Ratio": table["ratio_means"].apply(
                lambda x: f"{x:.3f}" if pd.notna(x) and not np.isinf(x) else "-"
            ),
            "p": table["p_value"].apply(
                lambda x: "-" if pd.isna(x) else (f"<{P_VALUE_FLOOR}" if x == 0 else f"{x:.3f}")
            ),
            "Selected": table["flagged"].map({True: "*", False: ""}),
        }
    )

    print(display_df.to_string(index=False))
    print("=" * 90)
