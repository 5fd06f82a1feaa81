"""Exception types raised by SPBFS."""

from typing import Optional, Sequence


class InvalidParameterError(ValueError):
    """A selection parameter is outside its documented range or has the wrong type."""


class ModelFitError(RuntimeError):
    """
    The propensity model could not be fitted for a covariate subset.

    Raised when iteratively reweighted least squares fails to converge or
    when fitted probabilities are numerically 0 or 1 (perfect separation).

    Parameters
    ----------
    message : str
        Description of the failure
    features : Optional[Sequence[str]]
        Covariate subset the model was fitted on
    """

    def __init__(self, message: str, features: Optional[Sequence[str]] = None):
        self.features = list(features) if features is not None else []
        if self.features:
            message = f"{message} (covariates: {', '.join(self.features)})"
        super().__init__(message)
