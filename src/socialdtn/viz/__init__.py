"""
Visualization utilities.

- Community growth curves
- Familiarity and path-weight heatmaps
- Delivery latency histograms
"""

from socialdtn.viz.communities import (
    plot_community_growth,
    plot_delivery_latency,
    plot_familiarity_matrix,
    plot_matrix,
    save_figure,
)

__all__ = [
    "plot_community_growth",
    "plot_delivery_latency",
    "plot_familiarity_matrix",
    "plot_matrix",
    "save_figure",
]
