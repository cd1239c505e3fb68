"""
Figures for community detection and delivery.

- Community growth curves (per host and mean)
- Familiarity / path-weight matrices as heatmaps
- Delivery latency distribution
"""

from __future__ import annotations
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.axes import Axes

if TYPE_CHECKING:
    from socialdtn.reports.community import CommunityReport
    from socialdtn.reports.delivery import DeliveryReport


CMAP_FAMILIAR = "Greys"
CMAP_WEIGHT = "viridis"


def plot_community_growth(
    report: "CommunityReport",
    title: str = "Local Community Size",
    ax: Axes | None = None,
    figsize: tuple[float, float] = (10, 6),
    show_hosts: bool = True,
) -> tuple[Figure, Axes]:
    """
    Plot community size over time.

    Args:
        report: CommunityReport with at least one sample
        title: Plot title
        ax: Existing axes (creates new if None)
        show_hosts: Draw one faint line per host under the mean

    Returns:
        (fig, ax) tuple
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    times = np.asarray(report.times)
    sizes = report.community_sizes

    if show_hosts:
        for column in sizes.T:
            ax.step(times, column, where="post", color="gray", alpha=0.25, linewidth=0.8)

    if sizes.size:
        ax.step(times, sizes.mean(axis=1), where="post", color="C0", linewidth=2.0, label="mean")
        ax.step(
            times, report.familiar_sizes.mean(axis=1),
            where="post", color="C1", linewidth=1.5, linestyle="--", label="mean familiar set",
        )
        ax.legend()

    ax.set_title(title)
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Members")
    ax.grid(True, alpha=0.3)
    return fig, ax


def plot_matrix(
    matrix: np.ndarray,
    labels: Sequence | None = None,
    title: str = "",
    cmap=CMAP_WEIGHT,
    vmin: float | None = None,
    vmax: float | None = None,
    ax: Axes | None = None,
    colorbar: bool = True,
    figsize: tuple[float, float] = (7, 6),
) -> tuple[Figure, Axes]:
    """Heatmap of a host-by-host matrix. NaN cells are left blank."""
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    im = ax.imshow(np.ma.masked_invalid(matrix.astype(np.float64)), cmap=cmap, vmin=vmin, vmax=vmax)
    if colorbar:
        plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    if labels is not None:
        ticks = np.arange(len(labels))
        ax.set_xticks(ticks)
        ax.set_yticks(ticks)
        ax.set_xticklabels([str(label) for label in labels], rotation=90, fontsize=7)
        ax.set_yticklabels([str(label) for label in labels], fontsize=7)

    ax.set_title(title)
    ax.set_xlabel("Peer")
    ax.set_ylabel("Host")
    return fig, ax


def plot_familiarity_matrix(
    adjacency: np.ndarray,
    labels: Sequence | None = None,
    title: str = "Mutual Familiarity",
    ax: Axes | None = None,
) -> tuple[Figure, Axes]:
    return plot_matrix(
        adjacency, labels=labels, title=title, cmap=CMAP_FAMILIAR,
        vmin=0, vmax=1, ax=ax, colorbar=False,
    )


def plot_delivery_latency(
    report: "DeliveryReport",
    title: str = "Delivery Latency",
    bins: int = 30,
    ax: Axes | None = None,
    figsize: tuple[float, float] = (8, 5),
) -> tuple[Figure, Axes]:
    """Histogram of first-delivery latencies with the median marked."""
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    latencies = report.latency_array()
    if latencies.size:
        ax.hist(latencies, bins=bins, color="C0", alpha=0.8)
        ax.axvline(np.median(latencies), color="red", linestyle="--", label="median")
        ax.legend()

    ratio = report.delivery_ratio()
    ax.set_title(f"{title} (delivery ratio {ratio:.2f})")
    ax.set_xlabel("Latency (s)")
    ax.set_ylabel("Messages")
    ax.grid(True, alpha=0.3)
    return fig, ax


def save_figure(fig: Figure, path: str | Path, dpi: int = 150, **kwargs) -> None:
    """Save figure to file."""
    fig.savefig(path, dpi=dpi, bbox_inches="tight", **kwargs)
