from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

ACTIVE_SERVICE = "ACTIVE_SERVICE"
ACTIVE_SERVICE_ID = "ACTIVE_SERVICE_ID"
ACTIVE_USER = "ACTIVE_USER"
ACTIVE_USER_ID = "ACTIVE_USER_ID"
SEARCH_QUERY = "SEARCH_QUERY"


class HostMessageDTO(BaseModel):
    """A postMessage payload from the embedding page. Unknown keys are kept, unknown types ignored."""

    model_config = ConfigDict(extra="allow")

    type: str
    service: dict[str, Any] | None = None
    id: str | None = None
    user: dict[str, Any] | None = None
    userId: str | None = None
    query: str | None = None

    def service_id(self) -> str | None:
        return (self.id or "").strip() or None

    def user_ref(self) -> dict[str, Any] | str | None:
        if self.user:
            return self.user
        return (self.userId or self.id or "").strip() or None
