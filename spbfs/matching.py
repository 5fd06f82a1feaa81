"""
Caliper-constrained score matching for SPBFS.

This module matches outcome-positive rows (cases) to outcome-negative rows
(controls) on a one-dimensional logit propensity score.
"""

from typing import Optional

import numpy as np
import pandas as pd
from sklearn.neighbors import NearestNeighbors

PAIR_COLUMNS = ["case_index", "control_index", "match_round", "distance"]


def _empty_pairs() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "case_index": pd.Series(dtype="int64"),
            "control_index": pd.Series(dtype="int64"),
            "match_round": pd.Series(dtype="int64"),
            "distance": pd.Series(dtype="float64"),
        }
    )


def caliper_width(scores: np.ndarray, caliper: float) -> float:
    """Caliper in score units: caliper x sample SD of the scores over all rows."""
    scores = np.asarray(scores, dtype=float)
    if len(scores) < 2:
        return 0.0
    return float(caliper * np.std(scores, ddof=1))


def match_on_score(
    scores: np.ndarray,
    outcome: np.ndarray,
    m_value: int = 1,
    caliper: float = 0.1,
    verbose: bool = False,
    warn_threshold: float = 0.5,
) -> pd.DataFrame:
    """
    Greedy 1-to-M nearest-neighbor matching without replacement.

    Cases are visited in ascending row order. Each case takes up to
    ``m_value`` of the nearest controls still in the pool whose score
    distance is within the caliper width; a used control leaves the pool.
    Candidates are ordered by distance, then by control row index, so the
    result is fully determined by the inputs.

    Parameters
    ----------
    scores : np.ndarray
        Matching score per row (logit propensity score)
    outcome : np.ndarray
        Binary outcome per row; 1 marks a case, 0 a control
    m_value : int
        Maximum number of controls matched to each case
    caliper : float
        Caliper in standard deviations of ``scores`` over all rows
    verbose : bool
        If True, print a summary of the matching result
    warn_threshold : float
        Match rate below which the verbose summary prints a warning line

    Returns
    -------
    pd.DataFrame
        One row per (case, control) pair with columns:
        - case_index: positional row index of the case
        - control_index: positional row index of the control
        - match_round: 1 for the case's closest control, 2 for the next, ...
        - distance: absolute score difference

        The frame is empty when no pair satisfies the caliper.
    """
    scores = np.asarray(scores, dtype=float)
    outcome = np.asarray(outcome)
    if scores.shape[0] != outcome.shape[0]:
        raise ValueError(
            f"scores and outcome must have the same length, got {scores.shape[0]} and {outcome.shape[0]}"
        )
    if m_value < 1:
        raise ValueError(f"m_value must be >= 1, got {m_value}")

    width = caliper_width(scores, caliper)
    case_pos = np.flatnonzero(outcome == 1)
    control_pos = np.flatnonzero(outcome == 0)

    if len(case_pos) == 0 or len(control_pos) == 0:
        if verbose:
            _print_match_summary(len(case_pos), len(control_pos), 0, 0, m_value, width, warn_threshold)
        return _empty_pairs()

    control_scores = scores[control_pos].reshape(-1, 1)
    model = NearestNeighbors(algorithm="kd_tree").fit(control_scores)
    _, neighbor_idx = model.radius_neighbors(
        scores[case_pos].reshape(-1, 1), radius=width, return_distance=True
    )

    available = np.ones(len(control_pos), dtype=bool)
    all_matches = []

    for i, case in enumerate(case_pos):
        candidates = neighbor_idx[i]
        candidates = candidates[available[candidates]]
        if len(candidates) == 0:
            continue

        distances = np.abs(scores[case] - scores[control_pos[candidates]])
        keep = distances <= width
        candidates, distances = candidates[keep], distances[keep]

        # Sort by distance, then by control row index
        order = np.lexsort((control_pos[candidates], distances))
        for round_num, j in enumerate(order[:m_value], start=1):
            local = candidates[j]
            all_matches.append(
                {
                    "case_index": int(case),
                    "control_index": int(control_pos[local]),
                    "match_round": round_num,
                    "distance": float(distances[j]),
                }
            )
            available[local] = False

    pairs = pd.DataFrame(all_matches, columns=PAIR_COLUMNS) if all_matches else _empty_pairs()

    if verbose:
        _print_match_summary(
            n_cases=len(case_pos),
            n_controls=len(control_pos),
            n_matched_pairs=len(pairs),
            n_matched_cases=pairs["case_index"].nunique(),
            m_value=m_value,
            width=width,
            warn_threshold=warn_threshold,
        )

    return pairs


def matched_groups(pairs: pd.DataFrame) -> Optional[tuple]:
    """Positional indices of the distinct matched cases and the matched controls."""
    if pairs.empty:
        return None
    cases = pairs["case_index"].drop_duplicates().to_numpy()
    controls = pairs["control_index"].to_numpy()
    return cases, controls


def _print_match_summary(
    n_cases: int,
    n_controls: int,
    n_matched_pairs: int,
    n_matched_cases: int,
    m_value: int,
    width: float,
    warn_threshold: float = 0.5,
) -> None:
    """Print MatchIt-style summary of matching results."""
    print(f"\nSPBFS: 1:{m_value} nearest neighbor matching on the logit propensity score")
    print(" - replacement: without replacement")
    print(f" - caliper width: {width:.4f} (logit units)")
    print(" - sample sizes:")
    print(f"     cases: {n_cases}")
    print(f"     controls: {n_controls}")

    match_rate = (n_matched_cases / n_cases) if n_cases > 0 else 0
    print(f" - matched: {n_matched_pairs} pairs across {n_matched_cases} cases ({match_rate*100:.1f}% of cases)")
    if m_value > 1 and n_matched_cases > 0:
        print(f"     mean controls per case: {n_matched_pairs / n_matched_cases:.2f}")

    if match_rate < warn_threshold:
        print(
            f"Warning: Low match rate: only {match_rate*100:.1f}% of cases were matched. "
            f"Consider increasing caliper_value."
        )
