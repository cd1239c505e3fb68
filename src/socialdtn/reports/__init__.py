"""
Reports: measurements taken while a simulation runs.

Reports observe routing but never change it.
- DeliveryReport: delivery ratio, latency, hop counts, overhead
- CommunityReport: community and familiar-set growth over time
"""

from socialdtn.reports.base import Report
from socialdtn.reports.community import CommunityReport
from socialdtn.reports.delivery import DeliveryReport

__all__ = [
    "Report",
    "CommunityReport",
    "DeliveryReport",
]
