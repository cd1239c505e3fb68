"""
Community detection: who a node considers socially close.

- KCliqueCommunityDetection: distributed K-Clique detection driven by
  contact durations, merged pairwise on every contact
- path_weight: delivery likelihood along a chain of social hops
- CommunityView / CommunitySnapshot: the only ways nodes see each other
"""

from socialdtn.community.base import CommunityDetection, CommunitySnapshot, CommunityView
from socialdtn.community.pathweight import hop_availability, lagrange_coefficients, path_weight
from socialdtn.community.kclique import KCliqueCommunityDetection, create_community_detector

__all__ = [
    "CommunityDetection",
    "CommunitySnapshot",
    "CommunityView",
    "hop_availability",
    "lagrange_coefficients",
    "path_weight",
    "KCliqueCommunityDetection",
    "create_community_detector",
]
