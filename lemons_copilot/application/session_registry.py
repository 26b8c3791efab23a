from __future__ import annotations

import logging
import uuid
from typing import Callable

from lemons_copilot.application.widget_session import WidgetSession
from lemons_copilot.infrastructure.host.outbox_channel import OutboxHostChannel

SessionFactory = Callable[[str], tuple[WidgetSession, OutboxHostChannel]]


class SessionRegistry:
    """Mounted widgets by session id. Re-mounting an id replaces the old instance."""

    def __init__(self, factory: SessionFactory) -> None:
        self._factory = factory
        self._sessions: dict[str, WidgetSession] = {}
        self._outboxes: dict[str, OutboxHostChannel] = {}
        self._logger = logging.getLogger(__name__)

    async def mount(
        self,
        session_id: str | None = None,
        service_id: str | None = None,
        user_id: str | None = None,
    ) -> WidgetSession:
        session_id = (session_id or "").strip() or uuid.uuid4().hex
        self.unmount(session_id)

        session, outbox = self._factory(session_id)
        self._sessions[session_id] = session
        self._outboxes[session_id] = outbox
        await session.start(service_id=service_id, user_id=user_id)
        self._logger.info("Widget mounted", extra={"session_id": session_id, "service_id": service_id})
        return session

    def get(self, session_id: str) -> WidgetSession | None:
        return self._sessions.get(session_id)

    def outbox(self, session_id: str) -> OutboxHostChannel | None:
        return self._outboxes.get(session_id)

    def unmount(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        self._outboxes.pop(session_id, None)
        if session is None:
            return False
        session.close()
        self._logger.info("Widget unmounted", extra={"session_id": session_id})
        return True
