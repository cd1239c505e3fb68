"""
Analysis layer: global views for evaluation.

IMPORTANT: This is NOT seen by the routers. One-way derivation only.

- familiarity_matrix / global_communities: ground-truth structure
- community_agreement: local views vs. global components
- path_weight_matrix: cached path weights across all hosts
"""

from socialdtn.analysis.communities import (
    AgreementResult,
    addresses_of,
    community_agreement,
    community_size_stats,
    familiarity_matrix,
    global_communities,
    path_weight_matrix,
)

__all__ = [
    "AgreementResult",
    "addresses_of",
    "community_agreement",
    "community_size_stats",
    "familiarity_matrix",
    "global_communities",
    "path_weight_matrix",
]
