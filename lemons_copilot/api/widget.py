from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response

from lemons_copilot.api.schemas import (
    ContextResponseSchema,
    HostMessageResponseSchema,
    MountRequestSchema,
    MountResponseSchema,
    OperationRequestSchema,
    OutboxResponseSchema,
    TranscriptResponseSchema,
    UserMessageRequestSchema,
    UserMessageResponseSchema,
    ViewOfferRequestSchema,
    ViewOfferResponseSchema,
)
from lemons_copilot.application.session_registry import SessionRegistry
from lemons_copilot.application.widget_session import WidgetSession
from lemons_copilot.infrastructure.store.transcript_store import serialize_entry
from lemons_copilot.wiring.dependencies import get_operation_catalog, get_session_registry

router = APIRouter(prefix="/widget")
logger = logging.getLogger(__name__)


def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> WidgetSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown widget session: {session_id}")
    return session


@router.get("/operations")
def list_operations(catalog: list[dict[str, Any]] = Depends(get_operation_catalog)) -> list[dict[str, Any]]:
    return catalog


@router.post("/sessions", response_model=MountResponseSchema, status_code=201)
async def mount(
    req: MountRequestSchema,
    registry: SessionRegistry = Depends(get_session_registry),
):
    try:
        session = await registry.mount(
            session_id=req.session_id,
            service_id=req.service_id,
            user_id=req.user_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MountResponseSchema(session_id=session.session_id, context=session.context.as_dict())


@router.delete("/sessions/{session_id}", status_code=204)
def unmount(session_id: str, registry: SessionRegistry = Depends(get_session_registry)) -> Response:
    if not registry.unmount(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown widget session: {session_id}")
    return Response(status_code=204)


@router.post("/sessions/{session_id}/host-messages", response_model=HostMessageResponseSchema)
async def host_message(payload: dict[str, Any], session: WidgetSession = Depends(get_session)):
    applied = await session.host.receive(payload)
    return HostMessageResponseSchema(applied=applied)


@router.get("/sessions/{session_id}/outbox", response_model=OutboxResponseSchema)
def drain_outbox(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    outbox = registry.outbox(session_id)
    if outbox is None:
        raise HTTPException(status_code=404, detail=f"Unknown widget session: {session_id}")
    return OutboxResponseSchema(events=outbox.drain())


@router.post("/sessions/{session_id}/messages", response_model=UserMessageResponseSchema)
async def user_message(req: UserMessageRequestSchema, session: WidgetSession = Depends(get_session)):
    before = len(session.transcript)
    try:
        reply = await session.submit_user_message(req.text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    added = session.transcript.entries[before:]
    return UserMessageResponseSchema(
        reply=reply.content if reply else None,
        entries=[serialize_entry(e) for e in added],
    )


@router.post("/sessions/{session_id}/operations/{name}")
async def invoke_operation(
    name: str,
    req: OperationRequestSchema,
    session: WidgetSession = Depends(get_session),
) -> dict[str, Any]:
    if session.operations.get(name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown operation: {name}")
    result = await session.operations.invoke(name, req.arguments)
    logger.info(
        "Operation invoked over HTTP",
        extra={"session_id": session.session_id, "operation": name, "status": result.success},
    )
    return result.to_payload()


@router.post("/sessions/{session_id}/view-offer", response_model=ViewOfferResponseSchema)
async def view_offer(req: ViewOfferRequestSchema, session: WidgetSession = Depends(get_session)):
    try:
        sent = await session.view_offer(req.service_id, req.service)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ViewOfferResponseSchema(sent=sent)


@router.get("/sessions/{session_id}/transcript", response_model=TranscriptResponseSchema)
def transcript(session: WidgetSession = Depends(get_session)):
    return TranscriptResponseSchema(
        session_id=session.session_id,
        entries=[serialize_entry(e) for e in session.transcript.entries],
    )


@router.get("/sessions/{session_id}/context", response_model=ContextResponseSchema)
def context(session: WidgetSession = Depends(get_session)):
    return ContextResponseSchema(facts=session.context.as_dict())
