from __future__ import annotations

import logging
from typing import Any

from lemons_copilot.application.active_record_store import ActiveRecordStore
from lemons_copilot.application.exceptions import (
    AssistantContractError,
    AssistantUpstreamError,
    TranscriptRestoreError,
)
from lemons_copilot.application.ports.assistant import AssistantRuntimePort
from lemons_copilot.application.ports.host_channel import HostChannelPort
from lemons_copilot.application.record_gateway import RecordGateway
from lemons_copilot.application.use_cases.context_projector import ContextProjector
from lemons_copilot.application.use_cases.failures import OPERATION_ERRORS
from lemons_copilot.application.use_cases.host_bridge import HostBridge
from lemons_copilot.application.use_cases.mutation_operations import MutationOperations
from lemons_copilot.application.use_cases.operation_registry import OperationRegistry
from lemons_copilot.application.use_cases.retrieval_operations import RetrievalOperations
from lemons_copilot.application.use_cases.turn_refresh import TurnRefreshController
from lemons_copilot.domain.entities.service import Service
from lemons_copilot.domain.entities.transcript import TextMessage, Transcript, TranscriptEntry
from lemons_copilot.infrastructure.store.transcript_store import TranscriptStore

FALLBACK_REPLY = "Sorry, I am having trouble answering right now. Please try again in a moment."


class WidgetSession:
    """One mounted chat widget: its transcript, active records and everything wired to them."""

    def __init__(
        self,
        session_id: str,
        gateway: RecordGateway,
        runtime: AssistantRuntimePort,
        channel: HostChannelPort,
        transcript_store: TranscriptStore,
        instructions: str,
        origin: str = "",
    ) -> None:
        self.session_id = session_id
        self._gateway = gateway
        self._runtime = runtime
        self._transcript_store = transcript_store
        self._instructions = instructions
        self._logger = logging.getLogger(__name__)

        self.transcript = Transcript()
        self.state = ActiveRecordStore(
            load_service=gateway.load_service,
            load_user=gateway.get_user,
            load_packages=gateway.load_packages_quietly,
        )
        self.context = ContextProjector(self.state)
        self.refresh = TurnRefreshController(self.transcript, self.state)
        self.host = HostBridge(self.state, channel, submit_query=self.submit_user_message, origin=origin)

        self.operations = OperationRegistry(self.transcript)
        for spec in RetrievalOperations(gateway, self.state).specs():
            self.operations.register(spec)
        for spec in MutationOperations(gateway, self.state, self.host).specs():
            self.operations.register(spec)

        self.transcript.subscribe(self._persist)

    def _persist(self, transcript: Transcript, entry: TranscriptEntry) -> None:
        self._transcript_store.save(transcript)

    def restore(self) -> None:
        """Load the persisted transcript once. Anything unreadable means starting empty."""
        try:
            entries = self._transcript_store.restore()
        except TranscriptRestoreError as e:
            self._logger.error(
                "Transcript restore failed; starting empty",
                extra={"session_id": self.session_id, "reason": str(e)},
            )
            self._transcript_store.clear()
            entries = []
        self.transcript.load(entries)
        self.refresh.prime(entries)

    async def start(self, service_id: str | None = None, user_id: str | None = None) -> None:
        """Mount: restore history, seed active records from URL parameters, announce readiness."""
        self.restore()

        if service_id:
            try:
                await self.state.set_active_service(service_id)
            except OPERATION_ERRORS as e:
                self._logger.warning(
                    "Could not seed active service",
                    extra={"session_id": self.session_id, "service_id": service_id, "reason": str(e)},
                )
        if user_id:
            try:
                await self.state.set_active_user(user_id)
            except OPERATION_ERRORS as e:
                self._logger.warning(
                    "Could not seed active user",
                    extra={"session_id": self.session_id, "user_id": user_id, "reason": str(e)},
                )

        self.host.emit_ready()

    async def submit_user_message(self, text: str) -> TextMessage | None:
        """Append a user message, attach fresh context, then let the assistant answer."""
        text = text.strip()
        if not text:
            return None
        self.transcript.append(TextMessage(role="user", content=text))
        await self.refresh.handle_latest()
        return await self._run_assistant()

    async def _run_assistant(self) -> TextMessage | None:
        instructions = self.context.render_instructions(self._instructions)
        try:
            reply = await self._runtime.run_turn(
                instructions,
                self.transcript.entries,
                self.operations.schema(),
                self.operations.invoke,
            )
        except (AssistantUpstreamError, AssistantContractError) as e:
            self._logger.error("Assistant turn failed", extra={"session_id": self.session_id, "reason": str(e)})
            reply = FALLBACK_REPLY

        if not reply:
            return None
        return self.transcript.append(TextMessage(role="assistant", content=reply))

    async def view_offer(self, service_id: str, service: dict[str, Any] | None = None) -> bool:
        """Result-card call to action: hand the chosen service to the host page."""
        if service:
            record = Service.from_record(service)
        elif service_id == self.state.service_id and self.state.snapshot().service:
            record = self.state.snapshot().service
        else:
            try:
                record = await self._gateway.get_service(service_id)
            except OPERATION_ERRORS as e:
                self._logger.warning(
                    "View offer lookup failed", extra={"service_id": service_id, "reason": str(e)}
                )
                return False
        self.host.emit_view_offer(record)
        return True

    def close(self) -> None:
        """Unmount. The persisted transcript survives; in-memory state does not."""
        self.state.reset()
