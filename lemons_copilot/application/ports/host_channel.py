from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class HostChannelPort(ABC):
    @abstractmethod
    def post(self, event: dict[str, Any]) -> None:
        """Deliver a widget-originated event to the embedding host page."""
        raise NotImplementedError
