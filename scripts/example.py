"""
Example usage of SPBFS on a synthetic diabetes-style dataset.

This script demonstrates the full SPBFS workflow:
1. Build a dataset with a binary outcome and eight candidate features
2. Run sub-population-based feature selection
3. Plot and save the ranked selection
"""

import os

import numpy as np
import pandas as pd
from sklearn.datasets import make_classification

from spbfs import get_selected_features, plot_selection


def make_dataset(n_samples: int = 768, random_state: int = 7) -> pd.DataFrame:
    """Synthetic stand-in for the Pima Indians Diabetes data."""
    X, y = make_classification(
        n_samples=n_samples,
        n_features=8,
        n_informative=3,
        n_redundant=1,
        n_repeated=0,
        weights=[0.65, 0.35],
        class_sep=0.8,
        shuffle=False,
        random_state=random_state,
    )
    names = ["glucose", "mass", "age", "pregnant", "pressure", "triceps", "insulin", "pedigree"]
    df = pd.DataFrame(X, columns=names)
    df["diabetes"] = y
    return df


def main():
    """Run SPBFS on the synthetic dataset."""
    df = make_dataset()
    feature_names = [c for c in df.columns if c != "diabetes"]

    print(f"Loaded {len(df)} rows, {int(df['diabetes'].sum())} positive")

    # 1. Select features
    print("\n1. Applying sub-population-based feature selection...")
    results = get_selected_features(
        df,
        feature_names=feature_names,
        outcome_var_name="diabetes",
        num_iterations=100,
        num_random_variables_for_matching=3,
        final_selection_threshold=0.0,
        caliper_value=0.1,
        m_value=1,
        p_value_threshold=0.001,
        verbose=0,
        random_state=42,
    )

    print("\nSelected features:")
    print(results.to_string(index=False))

    # 2. Plot results
    print("\n2. Plotting importance...")
    fig = plot_selection(results)
    output_path = os.path.join(os.path.dirname(__file__), "spbfs_selection.png")
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"Saved plot to {output_path}")


if __name__ == "__main__":
    main()
