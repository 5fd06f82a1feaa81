"""
SPBFS: Sub-population-based feature selection.

SPBFS ranks candidate features for a binary outcome by repeatedly matching
cases to controls on a propensity score built from a random feature subset
and voting for features that still differ between the matched groups.
"""

from .errors import InvalidParameterError, ModelFitError
from .matching import match_on_score
from .plot import plot_selection
from .propensity import fit_propensity_scores
from .selection import VoteTally, aggregate_votes, get_selected_features
from .summary import compare_matched_groups
from .validation import validate_parameters

__version__ = "1.0.0"
__all__ = [
    "get_selected_features",
    "fit_propensity_scores",
    "match_on_score",
    "compare_matched_groups",
    "validate_parameters",
    "aggregate_votes",
    "VoteTally",
    "plot_selection",
    "InvalidParameterError",
    "ModelFitError",
]
