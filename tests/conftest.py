"""
Pytest fixtures for SPBFS testing.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

FEATURES = [f"x{i}" for i in range(1, 9)]


@pytest.fixture(scope="session")
def synthetic_df():
    """
    200 rows, 8 numeric covariates, 40% positive outcome.

    x1 and x2 are shifted by one SD in cases; x3..x8 are noise.
    """
    rng = np.random.default_rng(2024)
    n = 200
    y = np.r_[np.ones(80, dtype=int), np.zeros(120, dtype=int)]
    rng.shuffle(y)

    X = rng.normal(size=(n, len(FEATURES)))
    X[:, 0] += 1.0 * y
    X[:, 1] += 1.0 * y

    df = pd.DataFrame(X, columns=FEATURES)
    df["outcome"] = y
    return df


@pytest.fixture(scope="session")
def feature_names():
    return list(FEATURES)


@pytest.fixture(scope="session")
def mixed_df():
    """Continuous and categorical covariates with a binary outcome."""
    rng = np.random.default_rng(7)
    n = 300
    y = rng.binomial(1, 0.4, size=n)

    smoker = np.where(rng.random(n) < 0.2 + 0.5 * y, "yes", "no")
    region = rng.choice(["north", "south", "east"], size=n)

    return pd.DataFrame(
        {
            "age": rng.normal(50, 10, size=n) + 5 * y,
            "bmi": rng.normal(27, 4, size=n),
            "smoker": smoker,
            "region": pd.Categorical(region),
            "flag": rng.binomial(1, 0.5, size=n),
            "outcome": y,
        }
    )
