"""
Base class for reports.

Reports observe the simulation but never change routing state. They
subscribe as message listeners, or are sampled between steps, and
accumulate measurements for later analysis.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Hashable, TYPE_CHECKING

if TYPE_CHECKING:
    from socialdtn.core.messages import Message


class Report(ABC):
    """
    Base class for reports.

    The listener hooks are no-ops here so a report only overrides the
    events it cares about.
    """

    def new_message(self, message: "Message") -> None:
        pass

    def message_transferred(
        self,
        message: "Message",
        from_host: Hashable,
        to_host: Hashable,
        first_delivery: bool,
    ) -> None:
        pass

    def message_deleted(self, message: "Message", host: Hashable, dropped: bool) -> None:
        pass

    @abstractmethod
    def get_measurements(self) -> dict:
        """
        Return accumulated measurements.

        Returns:
            Dict with report-specific measurements
        """
        ...
