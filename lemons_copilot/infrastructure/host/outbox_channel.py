from __future__ import annotations

import logging
from collections import deque
from typing import Any

from lemons_copilot.application.ports.host_channel import HostChannelPort


class OutboxHostChannel(HostChannelPort):
    """Queues host-bound events until the widget client drains them."""

    def __init__(self, max_events: int = 200) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=max_events)
        self._logger = logging.getLogger(__name__)

    def post(self, event: dict[str, Any]) -> None:
        self._events.append(dict(event))
        self._logger.info("Host event queued", extra={"reason": event.get("type")})

    def drain(self) -> list[dict[str, Any]]:
        events = list(self._events)
        self._events.clear()
        return events
