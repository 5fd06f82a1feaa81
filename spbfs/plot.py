"""
Importance plot for SPBFS selections.

This module draws the final selection as a horizontal bar chart of vote
frequencies.
"""

from typing import Optional, Tuple

import matplotlib.figure
import matplotlib.pyplot as plt
import pandas as pd


def plot_selection(
    selection: pd.DataFrame,
    figsize: Tuple[int, int] = (6, 4),
    ax: Optional[plt.Axes] = None,
    threshold: Optional[float] = None,
) -> matplotlib.figure.Figure:
    """
    Plot selected features ranked by importance.

    Parameters
    ----------
    selection : pd.DataFrame
        Output from get_selected_features(), with Feature_Name and Frequency
    figsize : Tuple[int, int]
        Figure size (width, height) in inches, used when ``ax`` is None
    ax : Optional[plt.Axes]
        Axes to draw on; a new figure is created if None
    threshold : Optional[float]
        If given, draw a reference line at the final selection threshold

    Returns
    -------
    matplotlib.figure.Figure
        Figure with one horizontal bar per feature, most important on top
    """
    missing = {"Feature_Name", "Frequency"} - set(selection.columns)
    if missing:
        raise ValueError(f"selection is missing columns: {sorted(missing)}")

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    # Ascending order puts the most important feature at the top
    plot_df = selection.sort_values("Frequency", kind="stable")

    ax.barh(plot_df["Feature_Name"].astype(str), plot_df["Frequency"], color="steelblue")
    ax.set_xlim(0, 1)
    ax.set_xlabel("Importance")
    ax.tick_params(axis="y", labelsize=7)
    ax.tick_params(axis="x", labelsize=7)
    ax.grid(True, axis="x", alpha=0.3)

    if threshold is not None:
        ax.axvline(x=threshold, color='red', linestyle='--', linewidth=1, alpha=0.7)
        ax.text(threshold + 0.01, -0.5, f"{threshold:g} threshold", color='red', fontsize=8,
                verticalalignment='bottom', horizontalalignment='left')

    if plot_df.empty:
        ax.text(0.5, 0.5, "No features selected", transform=ax.transAxes,
                horizontalalignment='center', verticalalignment='center')

    fig.tight_layout()

    return fig
