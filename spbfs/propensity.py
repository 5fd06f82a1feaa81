"""
Propensity model fitting for SPBFS.

This module fits a logistic regression of the outcome on a covariate subset
and converts the fitted probabilities to logit scores used for matching.
"""

from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.special import expit, xlogy

from .errors import ModelFitError
from .utils import build_design_matrix

# Fitted probabilities closer than this to 0 or 1 count as degenerate
PROBABILITY_EPSILON = 10 * np.finfo(float).eps

MAX_IRLS_ITERATIONS = 25
IRLS_TOLERANCE = 1e-8


def logit(probabilities: np.ndarray, eps: float = PROBABILITY_EPSILON) -> np.ndarray:
    """Log-odds of probabilities clipped to [eps, 1 - eps], so the result is finite."""
    p = np.clip(np.asarray(probabilities, dtype=float), eps, 1.0 - eps)
    return np.log(p / (1.0 - p))


def _binomial_deviance(y: np.ndarray, mu: np.ndarray) -> float:
    mu = np.clip(mu, PROBABILITY_EPSILON, 1.0 - PROBABILITY_EPSILON)
    return float(-2.0 * np.sum(xlogy(y, mu) + xlogy(1.0 - y, 1.0 - mu)))


def fit_logistic_irls(
    X: np.ndarray,
    y: np.ndarray,
    max_iter: int = MAX_IRLS_ITERATIONS,
    tol: float = IRLS_TOLERANCE,
) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    Fit a logistic regression by iteratively reweighted least squares.

    Starting values and the convergence rule follow R's glm(): the initial
    mean is (y + 0.5) / 2 and iteration stops once the relative change in
    deviance drops below ``tol``. Each weighted least-squares step is solved
    with ``lstsq`` so aliased design columns do not break the fit.

    Parameters
    ----------
    X : np.ndarray
        Design matrix including the intercept column, shape (n, p)
    y : np.ndarray
        Binary outcome, shape (n,)
    max_iter : int
        Maximum number of IRLS iterations
    tol : float
        Relative deviance tolerance

    Returns
    -------
    Tuple[np.ndarray, np.ndarray, int]
        (coefficients, fitted probabilities, iterations used)

    Raises
    ------
    ModelFitError
        If the fit does not converge within ``max_iter`` iterations or the
        least-squares solve fails
    """
    y = np.asarray(y, dtype=float)
    mu = (y + 0.5) / 2.0
    eta = np.log(mu / (1.0 - mu))
    deviance_old = _binomial_deviance(y, mu)
    beta = np.zeros(X.shape[1])

    for iteration in range(1, max_iter + 1):
        weights = mu * (1.0 - mu)
        working_response = eta + (y - mu) / weights
        sqrt_w = np.sqrt(weights)
        try:
            beta, _, _, _ = np.linalg.lstsq(
                X * sqrt_w[:, None], working_response * sqrt_w, rcond=None
            )
        except np.linalg.LinAlgError as exc:
            raise ModelFitError(f"Weighted least-squares step failed: {exc}") from exc

        eta = X @ beta
        mu = expit(eta)
        # Keep weights strictly positive for the next step
        mu = np.clip(mu, PROBABILITY_EPSILON, 1.0 - PROBABILITY_EPSILON)
        deviance = _binomial_deviance(y, mu)

        if not np.isfinite(deviance):
            raise ModelFitError("Deviance became non-finite during IRLS")
        if abs(deviance - deviance_old) / (abs(deviance) + 0.1) < tol:
            return beta, expit(eta), iteration
        deviance_old = deviance

    raise ModelFitError(f"Logistic regression did not converge in {max_iter} iterations")


def fit_propensity_scores(
    df: pd.DataFrame,
    outcome_var_name: str,
    features: List[str],
    categorical_cols: Optional[List[str]] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Fit a propensity model of the outcome on a covariate subset.

    Parameters
    ----------
    df : pd.DataFrame
        Input data (not modified)
    outcome_var_name : str
        Binary outcome column
    features : List[str]
        Non-empty covariate subset used as predictors
    categorical_cols : Optional[List[str]]
        Columns among ``features`` to one-hot encode

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (propensity scores, logit scores), one entry per row in row order

    Raises
    ------
    ModelFitError
        On non-convergence or when any fitted probability is numerically
        0 or 1 (perfect separation)
    """
    if len(features) == 0:
        raise ModelFitError("At least one covariate is required to fit a propensity model")

    X = build_design_matrix(df, features, categorical_cols)
    y = df[outcome_var_name].to_numpy(dtype=float)

    try:
        _, pscore, _ = fit_logistic_irls(X, y)
    except ModelFitError as exc:
        raise ModelFitError(str(exc), features) from exc

    degenerate = (pscore <= PROBABILITY_EPSILON) | (pscore >= 1.0 - PROBABILITY_EPSILON)
    if degenerate.any():
        raise ModelFitError(
            f"Fitted probabilities numerically 0 or 1 for {int(degenerate.sum())} row(s)",
            features,
        )

    return pscore, logit(pscore)
