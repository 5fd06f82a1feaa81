"""
Sub-population-based feature selection.

Each iteration draws a random covariate subset, fits a propensity model of
the outcome on it, matches cases to controls on the logit score and tests
every covariate for a difference between the matched groups. Covariates
that pass the p-value threshold receive a vote; the final selection keeps
covariates whose vote frequency across iterations exceeds a threshold.
"""

from typing import Dict, Iterable, List, Literal, Optional, Set

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .errors import ModelFitError
from .matching import match_on_score
from .propensity import fit_propensity_scores
from .summary import compare_matched_groups
from .utils import _discover_categorical_columns, _to_pandas
from .validation import validate_parameters
from .warnings_util import warn

SELECTION_COLUMNS = ["Feature_Name", "Frequency"]


class VoteTally:
    """
    Per-feature vote counts for one selection run.

    Counts start at zero for every feature, in the order given. Votes are
    added one iteration at a time, so an iteration either contributes all of
    its votes or none.
    """

    def __init__(self, feature_names: Iterable[str]):
        self._counts: Dict[str, int] = {name: 0 for name in feature_names}
        self.num_iterations = 0

    def add(self, flagged: Iterable[str]) -> None:
        """Record the flagged features of one iteration."""
        flagged = set(flagged)
        unknown = flagged - set(self._counts)
        if unknown:
            raise KeyError(f"Unknown features in iteration votes: {sorted(unknown)}")
        for name in self._counts:
            if name in flagged:
                self._counts[name] += 1
        self.num_iterations += 1

    def merge(self, other: "VoteTally") -> "VoteTally":
        """Add the counts of another tally over the same features."""
        if list(other._counts) != list(self._counts):
            raise ValueError("Cannot merge tallies over different features")
        for name, count in other._counts.items():
            self._counts[name] += count
        self.num_iterations += other.num_iterations
        return self

    @property
    def counts(self) -> Dict[str, int]:
        return dict(self._counts)

    def __repr__(self) -> str:
        return f"VoteTally(num_iterations={self.num_iterations}, counts={self._counts})"


def aggregate_votes(
    tally: VoteTally,
    num_iterations: int,
    final_selection_threshold: float = 0.5,
) -> pd.DataFrame:
    """
    Convert vote counts into the ranked final selection.

    Parameters
    ----------
    tally : VoteTally
        Votes accumulated over the run
    num_iterations : int
        Number of iterations the votes were collected over
    final_selection_threshold : float
        Features are kept only if their frequency is strictly greater

    Returns
    -------
    pd.DataFrame
        Columns Feature_Name and Frequency, sorted by Frequency descending
        with ties in tally order. Empty (same columns) if nothing survives.
    """
    counts = tally.counts
    frequencies = pd.DataFrame(
        {
            "Feature_Name": pd.Series(list(counts.keys()), dtype=object),
            "Frequency": pd.Series(list(counts.values()), dtype=float) / num_iterations,
        }
    )
    selected = frequencies[frequencies["Frequency"] > final_selection_threshold]
    selected = selected.sort_values("Frequency", ascending=False, kind="stable")
    return selected.reset_index(drop=True)


def _draw_subset(rng: np.random.Generator, feature_names: List[str], k: int) -> List[str]:
    return [feature_names[i] for i in rng.choice(len(feature_names), size=k, replace=False)]


def run_iteration(
    df: pd.DataFrame,
    feature_names: List[str],
    outcome_var_name: str,
    rng: np.random.Generator,
    num_random_variables_for_matching: int = 3,
    caliper_value: float = 0.1,
    m_value: int = 1,
    p_value_threshold: float = 0.001,
    categorical_cols: Optional[List[str]] = None,
    on_fit_error: Literal["raise", "resample"] = "raise",
    max_resample_attempts: int = 10,
    verbose: bool = False,
) -> Set[str]:
    """
    Run one selection iteration and return the flagged feature names.

    Draws a covariate subset from ``rng``, fits the propensity model, matches
    on its logit score and compares all covariates between the matched
    groups. An empty match set yields no votes.

    Raises
    ------
    ModelFitError
        If the propensity model fails and ``on_fit_error`` is "raise", or if
        every resampled subset fails when it is "resample"
    """
    categorical_cols = categorical_cols or []
    attempts = 0
    while True:
        subset = _draw_subset(rng, feature_names, num_random_variables_for_matching)
        try:
            _, logit_scores = fit_propensity_scores(
                df,
                outcome_var_name,
                subset,
                [c for c in subset if c in categorical_cols],
            )
            break
        except ModelFitError as exc:
            attempts += 1
            if on_fit_error == "raise" or attempts >= max_resample_attempts:
                raise
            warn(f"{exc}; drawing a new covariate subset ({attempts}/{max_resample_attempts})")

    if verbose:
        print(f"\nCovariates used for matching: {', '.join(subset)}")

    pairs = match_on_score(
        logit_scores,
        df[outcome_var_name].to_numpy(),
        m_value=m_value,
        caliper=caliper_value,
        verbose=verbose,
    )
    if pairs.empty:
        if verbose:
            print("No case/control pairs within the caliper; iteration contributes no votes.")
        return set()

    table = compare_matched_groups(
        df,
        pairs,
        feature_names,
        categorical_cols=categorical_cols,
        p_value_threshold=p_value_threshold,
        verbose=verbose,
    )
    return set(table.loc[table["flagged"], "covariate"])


def get_selected_features(
    df,
    feature_names: List[str],
    outcome_var_name: str,
    num_iterations: int = 100,
    num_random_variables_for_matching: int = 3,
    final_selection_threshold: float = 0.5,
    caliper_value: float = 0.1,
    m_value: int = 1,
    p_value_threshold: float = 0.001,
    verbose: int = 0,
    random_state: Optional[int] = None,
    n_jobs: int = 1,
    categorical_features: Optional[List[str]] = None,
    on_fit_error: Literal["raise", "resample"] = "raise",
    max_resample_attempts: int = 10,
) -> pd.DataFrame:
    """
    Select features by sub-population-based resampling and voting.

    Propensity score matching is applied with the outcome as the matching
    variable, using a randomly drawn subset of features, to find a
    homogeneous sub-population of cases and controls. Every feature is then
    compared between the matched groups and those with p-values below
    ``p_value_threshold`` receive a vote. This is repeated
    ``num_iterations`` times; features whose vote frequency exceeds
    ``final_selection_threshold`` are returned, ranked by frequency.

    Parameters
    ----------
    df : pd.DataFrame
        Data with feature columns and a binary outcome. Features may be
        continuous or categorical; no missing values are allowed. Objects
        with a ``toPandas()`` method are collected to pandas first.
    feature_names : List[str]
        Names of features in ``df``
    outcome_var_name : str
        Name of the binary (0/1) outcome column
    num_iterations : int
        Number of resampling iterations (1 to 1000). Default 100
    num_random_variables_for_matching : int
        Number of randomly drawn features used to fit the propensity model
        (1 to len(feature_names)). Default 3
    final_selection_threshold : float
        Features are selected only if their vote frequency exceeds this
        (0 to 1). Default 0.5
    caliper_value : float
        Caliper in standard deviations of the logit propensity score
        (0 to 1). Default 0.1
    m_value : int
        Number of controls matched per case (1 to 10). Default 1
    p_value_threshold : float
        Univariate p-value threshold for a vote (0 to 1). Default 0.001
    verbose : int
        0 or 1. If 1, print each iteration's match summary and matched-group
        comparison table and the final selection. Per-iteration output is
        only printed when n_jobs=1; with workers only the final selection is
        printed and a SelectionWarning is issued
    random_state : Optional[int]
        Seed for reproducible runs. Each iteration draws from its own
        generator spawned from this seed
    n_jobs : int
        Number of joblib workers; 1 runs sequentially, -1 uses all cores.
        Results do not depend on n_jobs
    categorical_features : Optional[List[str]]
        Features to treat as categorical in addition to those with object,
        string, category or bool dtype
    on_fit_error : {"raise", "resample"}
        What to do when the propensity model cannot be fitted for a subset.
        "raise" (default) aborts the run; "resample" draws a new subset
    max_resample_attempts : int
        Attempts per iteration before giving up when resampling

    Returns
    -------
    pd.DataFrame
        Selected features ranked by importance, with columns
        ``Feature_Name`` and ``Frequency`` (fraction of iterations in which
        the feature received a vote, in (final_selection_threshold, 1]).

    Raises
    ------
    InvalidParameterError
        If any parameter is outside its documented range
    ModelFitError
        If a propensity model cannot be fitted (see ``on_fit_error``)
    """
    df = _to_pandas(df)
    validate_parameters(
        df,
        feature_names,
        outcome_var_name,
        num_iterations=num_iterations,
        num_random_variables_for_matching=num_random_variables_for_matching,
        final_selection_threshold=final_selection_threshold,
        caliper_value=caliper_value,
        m_value=m_value,
        p_value_threshold=p_value_threshold,
        verbose=verbose,
        random_state=random_state,
        n_jobs=n_jobs,
        categorical_features=categorical_features,
        on_fit_error=on_fit_error,
        max_resample_attempts=max_resample_attempts,
    )

    feature_names = list(feature_names)
    num_iterations = int(num_iterations)
    verbose = bool(verbose)
    if verbose and n_jobs != 1:
        warn(
            f"verbose per-iteration output is not shown with n_jobs={n_jobs}; "
            "only the final selection is printed"
        )
    categorical_cols = _discover_categorical_columns(df, feature_names, categorical_features)
    # Positional row order for matching
    df = df.reset_index(drop=True)

    iteration_kwargs = dict(
        num_random_variables_for_matching=int(num_random_variables_for_matching),
        caliper_value=float(caliper_value),
        m_value=int(m_value),
        p_value_threshold=float(p_value_threshold),
        categorical_cols=categorical_cols,
        on_fit_error=on_fit_error,
        max_resample_attempts=int(max_resample_attempts),
    )
    seeds = np.random.SeedSequence(random_state).spawn(num_iterations)

    tally = VoteTally(feature_names)

    if n_jobs == 1:
        for i, seed in enumerate(seeds, start=1):
            flagged = run_iteration(
                df,
                feature_names,
                outcome_var_name,
                np.random.default_rng(seed),
                verbose=verbose,
                **iteration_kwargs,
            )
            tally.add(flagged)
            print(f"{i} out of {num_iterations} iterations completed.")
    else:
        results = Parallel(n_jobs=n_jobs, backend="loky", return_as="generator")(
            delayed(run_iteration)(
                df,
                feature_names,
                outcome_var_name,
                np.random.default_rng(seed),
                verbose=False,
                **iteration_kwargs,
            )
            for seed in seeds
        )
        for i, flagged in enumerate(results, start=1):
            tally.add(flagged)
            print(f"{i} out of {num_iterations} iterations completed.")

    selection = aggregate_votes(tally, num_iterations, final_selection_threshold)

    if verbose:
        print("\nSelected features")
        print(selection.to_string() if len(selection) else "(none)")

    return selection
