"""
Tests for caliper score matching in SPBFS.
"""

import numpy as np
import pytest

from spbfs import fit_propensity_scores, match_on_score
from spbfs.matching import caliper_width


@pytest.fixture
def logit_scores(synthetic_df):
    """Logit propensity scores from a fixed covariate subset."""
    _, scores = fit_propensity_scores(synthetic_df, "outcome", ["x1", "x4", "x6"])
    return scores


def test_output_columns(logit_scores, synthetic_df):
    """Test that the pairs frame has the documented columns."""
    pairs = match_on_score(logit_scores, synthetic_df["outcome"].to_numpy(), caliper=0.2)

    assert list(pairs.columns) == ["case_index", "control_index", "match_round", "distance"]
    assert len(pairs) > 0


@pytest.mark.parametrize("m_value", [1, 2, 3])
@pytest.mark.parametrize("caliper", [0.05, 0.2, 1.0])
def test_caliper_and_no_replacement(logit_scores, synthetic_df, m_value, caliper):
    """Test the caliper bound, no control reuse and at most M controls per case."""
    outcome = synthetic_df["outcome"].to_numpy()
    pairs = match_on_score(logit_scores, outcome, m_value=m_value, caliper=caliper)
    width = caliper * np.std(logit_scores, ddof=1)

    # Caliper holds for every accepted pair
    observed = np.abs(logit_scores[pairs["case_index"]] - logit_scores[pairs["control_index"]])
    assert np.all(observed <= width)

    # Each control used at most once
    assert pairs["control_index"].is_unique

    # Cases are cases, controls are controls
    assert np.all(outcome[pairs["case_index"]] == 1)
    assert np.all(outcome[pairs["control_index"]] == 0)

    # No case has more than M controls
    assert pairs.groupby("case_index").size().max() <= m_value


def test_tie_breaks_on_smallest_row_index():
    """Test that equidistant controls are taken in row order."""
    scores = np.array([0.0, 1.0, -1.0, 5.0])
    outcome = np.array([1, 0, 0, 0])

    pairs = match_on_score(scores, outcome, m_value=2, caliper=1.0)

    assert pairs["control_index"].tolist() == [1, 2]
    assert pairs["match_round"].tolist() == [1, 2]
    assert pairs["distance"].tolist() == [1.0, 1.0]


def test_nearest_control_first():
    """Test that a case takes its closest control before farther ones."""
    scores = np.array([0.0, 0.9, 0.1, 0.5])
    outcome = np.array([1, 0, 0, 0])

    pairs = match_on_score(scores, outcome, m_value=3, caliper=3.0)

    assert pairs["control_index"].tolist() == [2, 3, 1]


def test_without_replacement_earlier_case_wins():
    """Test that a control used by an earlier case is unavailable to later ones."""
    scores = np.array([0.0, 0.1, 0.05, 3.0])
    outcome = np.array([1, 1, 0, 0])

    pairs = match_on_score(scores, outcome, m_value=1, caliper=0.1)

    assert pairs[["case_index", "control_index"]].values.tolist() == [[0, 2]]


def test_deterministic(logit_scores, synthetic_df):
    """Test that identical inputs produce identical pairs."""
    outcome = synthetic_df["outcome"].to_numpy()
    first = match_on_score(logit_scores, outcome, m_value=2, caliper=0.2)
    second = match_on_score(logit_scores, outcome, m_value=2, caliper=0.2)

    assert first.equals(second)


def test_empty_when_no_pair_within_caliper():
    """Test that an unsatisfiable caliper returns an empty frame, not an error."""
    scores = np.array([0.0, 10.0, 20.0, 30.0])
    outcome = np.array([1, 0, 1, 0])

    pairs = match_on_score(scores, outcome, caliper=0.1)

    assert pairs.empty
    assert list(pairs.columns) == ["case_index", "control_index", "match_round", "distance"]


def test_empty_when_no_controls():
    """Test that a dataset without controls yields no pairs."""
    pairs = match_on_score(np.array([0.1, 0.2, 0.3]), np.array([1, 1, 1]))

    assert pairs.empty


def test_zero_caliper_matches_only_ties():
    """Test that caliper 0 accepts only identical scores."""
    scores = np.array([0.5, 0.5, 0.7, 0.9])
    outcome = np.array([1, 0, 1, 0])

    pairs = match_on_score(scores, outcome, caliper=0.0)

    assert pairs[["case_index", "control_index"]].values.tolist() == [[0, 1]]


def test_invalid_m_value():
    """Test that m_value < 1 raises ValueError."""
    with pytest.raises(ValueError, match="m_value must be >= 1"):
        match_on_score(np.array([0.0, 1.0]), np.array([1, 0]), m_value=0)


def test_verbose_prints_summary(logit_scores, synthetic_df, capsys):
    """Test that verbose mode prints the match summary."""
    match_on_score(logit_scores, synthetic_df["outcome"].to_numpy(), caliper=0.2, verbose=True)

    out = capsys.readouterr().out
    assert "1:1 nearest neighbor matching" in out
    assert "cases: 80" in out
    assert "controls: 120" in out


def test_caliper_width_uses_sample_sd():
    """Test caliper width against a hand-computed value."""
    scores = np.array([1.0, 2.0, 3.0, 4.0, 5.0])  # sample SD = sqrt(2.5)

    assert caliper_width(scores, 0.5) == pytest.approx(0.5 * np.sqrt(2.5))
