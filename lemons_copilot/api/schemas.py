from pydantic import BaseModel, Field
from typing import Any


class MountRequestSchema(BaseModel):
    session_id: str | None = None
    service_id: str | None = None
    user_id: str | None = None


class MountResponseSchema(BaseModel):
    session_id: str
    context: dict[str, Any] = Field(default_factory=dict)


class HostMessageResponseSchema(BaseModel):
    applied: bool


class OutboxResponseSchema(BaseModel):
    events: list[dict[str, Any]] = Field(default_factory=list)


class UserMessageRequestSchema(BaseModel):
    text: str = Field(min_length=1)


class UserMessageResponseSchema(BaseModel):
    reply: str | None = None
    entries: list[dict[str, Any]] = Field(default_factory=list)


class OperationRequestSchema(BaseModel):
    arguments: dict[str, Any] = Field(default_factory=dict)


class ViewOfferRequestSchema(BaseModel):
    service_id: str = Field(min_length=1)
    service: dict[str, Any] | None = None


class ViewOfferResponseSchema(BaseModel):
    sent: bool


class TranscriptResponseSchema(BaseModel):
    session_id: str
    entries: list[dict[str, Any]]


class ContextResponseSchema(BaseModel):
    facts: dict[str, Any]
