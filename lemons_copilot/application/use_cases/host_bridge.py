from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from lemons_copilot.application.active_record_store import ActiveRecordStore
from lemons_copilot.application.dto.host_message import (
    ACTIVE_SERVICE,
    ACTIVE_SERVICE_ID,
    ACTIVE_USER,
    ACTIVE_USER_ID,
    SEARCH_QUERY,
    HostMessageDTO,
)
from lemons_copilot.application.ports.host_channel import HostChannelPort
from lemons_copilot.application.use_cases.failures import OPERATION_ERRORS
from lemons_copilot.domain.entities.service import Service
from lemons_copilot.domain.entities.user import User

SERVICE_UPDATED = "SERVICE_UPDATED"
SERVICE_CATEGORY_UPDATED = "SERVICE_CATEGORY_UPDATED"
SERVICE_DESCRIPTION_UPDATED = "SERVICE_DESCRIPTION_UPDATED"
PACKAGE_UPDATED = "PACKAGE_UPDATED"
USER_UPDATED = "USER_UPDATED"
IFRAME_READY = "LEMONS_IFRAME_READY"
VIEW_OFFER = "VIEW_OFFER"

QuerySubmitter = Callable[[str], Awaitable[Any]]


class HostBridge:
    """
    Messaging with the page that embeds the widget.

    The channel is treated as open: no origin checks. Outbound events are
    fire-and-forget; a delivery failure is logged, never raised.
    """

    def __init__(
        self,
        state: ActiveRecordStore,
        channel: HostChannelPort,
        submit_query: QuerySubmitter | None = None,
        origin: str = "",
    ) -> None:
        self._state = state
        self._channel = channel
        self._submit_query = submit_query
        self._origin = origin
        self._logger = logging.getLogger(__name__)

    def bind_query_submitter(self, submit_query: QuerySubmitter) -> None:
        self._submit_query = submit_query

    # outbound

    def notify(self, event_type: str, **payload: Any) -> None:
        event = {"type": event_type, **payload}
        try:
            self._channel.post(event)
        except Exception as e:
            self._logger.warning("Host notification failed", extra={"reason": f"{event_type}: {e}"})

    def emit_ready(self) -> None:
        self.notify(IFRAME_READY, origin=self._origin)

    def emit_view_offer(self, service: Service) -> None:
        self.notify(VIEW_OFFER, serviceId=service.id, service=service.to_context())

    # inbound

    async def receive(self, payload: Any) -> bool:
        """Apply one host message. Returns False when it was ignored or could not be applied."""
        try:
            message = HostMessageDTO.model_validate(payload)
        except ValidationError as e:
            self._logger.warning("Malformed host message ignored", extra={"reason": str(e)[:200]})
            return False

        try:
            return await self._dispatch(message)
        except OPERATION_ERRORS as e:
            self._logger.warning("Host message could not be applied", extra={"reason": f"{message.type}: {e}"})
            return False
        except ValueError as e:
            self._logger.warning("Host message carried an unusable record", extra={"reason": f"{message.type}: {e}"})
            return False

    async def _dispatch(self, message: HostMessageDTO) -> bool:
        if message.type == ACTIVE_SERVICE and message.service:
            await self._state.set_active_service(Service.from_record(message.service))
            return True

        if message.type == ACTIVE_SERVICE_ID and message.service_id():
            await self._state.set_active_service(message.service_id())
            return True

        if message.type in (ACTIVE_USER, ACTIVE_USER_ID):
            ref = message.user_ref()
            if isinstance(ref, dict):
                await self._state.set_active_user(User.from_record(ref))
                return True
            if ref:
                await self._state.set_active_user(ref)
                return True
            return False

        if message.type == SEARCH_QUERY and (message.query or "").strip():
            if self._submit_query is None:
                self._logger.warning("Search query received before the chat was ready")
                return False
            await self._submit_query(message.query.strip())
            return True

        self._logger.info("Host message ignored", extra={"reason": message.type})
        return False
