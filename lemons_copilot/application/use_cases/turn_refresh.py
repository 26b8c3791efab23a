from __future__ import annotations

import asyncio
import logging

from lemons_copilot.application.active_record_store import ActiveRecordStore
from lemons_copilot.application.use_cases.failures import OPERATION_ERRORS, failure_from_error
from lemons_copilot.application.utils.id_extractor import extract_record_id
from lemons_copilot.domain.entities.operation_result import OperationResult
from lemons_copilot.domain.entities.transcript import (
    ActionInvocation,
    ActionResult,
    TextMessage,
    Transcript,
    TranscriptEntry,
)

REFRESH_OPERATION = "getServiceById"


class TurnRefreshController:
    """
    Attaches fresh service data to the transcript for every new user message.

    For each user message (once per message id) it picks a service id from the
    text, or falls back to the active service, appends a synthetic invocation
    right away, fetches, then appends the linked result. Failed fetches still
    produce a result, marked unsuccessful.
    """

    def __init__(self, transcript: Transcript, state: ActiveRecordStore) -> None:
        self._transcript = transcript
        self._state = state
        self._last_handled_message_id: str | None = None
        # Keeps each synthetic (invocation, result) pair adjacent to the controller's other pairs
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    @property
    def last_handled_message_id(self) -> str | None:
        return self._last_handled_message_id

    def prime(self, entries: list[TranscriptEntry]) -> None:
        """Mark the latest user message of a restored transcript as already handled."""
        latest = _latest_user_message(entries)
        if latest is not None:
            self._last_handled_message_id = latest.id

    async def handle_latest(self) -> ActionResult | None:
        message = _latest_user_message(self._transcript.entries)
        if message is None or message.id == self._last_handled_message_id:
            return None
        # Set before any await: a second render of the same list sees it immediately
        self._last_handled_message_id = message.id

        candidate = extract_record_id(message.content) or self._state.service_id
        if not candidate:
            return None
        return await self._attach(candidate)

    async def _attach(self, service_id: str) -> ActionResult:
        async with self._lock:
            invocation = self._transcript.append(
                ActionInvocation(name=REFRESH_OPERATION, arguments={"serviceId": service_id}, synthetic=True)
            )
            self._logger.info("Context attachment started", extra={"service_id": service_id})

            try:
                load = await self._state.set_active_service(service_id)
            except OPERATION_ERRORS as e:
                self._logger.warning(
                    "Context attachment failed", extra={"service_id": service_id, "reason": str(e)}
                )
                result = failure_from_error(e, "Could not load the service.")
            else:
                result = OperationResult.ok(
                    f'Loaded service "{load.service.title}".',
                    service=load.service.to_context(),
                    packages=[p.to_context() for p in load.packages],
                )

            return self._transcript.append(
                ActionResult(
                    invocation_id=invocation.id,
                    name=REFRESH_OPERATION,
                    result=result.to_payload(),
                    synthetic=True,
                )
            )


def _latest_user_message(entries: list[TranscriptEntry]) -> TextMessage | None:
    for entry in reversed(entries):
        if isinstance(entry, TextMessage) and entry.role == "user":
            return entry
    return None
