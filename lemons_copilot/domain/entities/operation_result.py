from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class OperationResult:
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    kind: str | None = None  # failure kind: "precondition", "validation", "transport", "resolution"
    error: str | None = None

    @staticmethod
    def ok(message: str, **data: Any) -> "OperationResult":
        return OperationResult(success=True, message=message, data=data)

    @staticmethod
    def failure(kind: str, message: str, error: str | None = None) -> "OperationResult":
        return OperationResult(success=False, message=message, kind=kind, error=error)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        payload.update(self.data)
        if not self.success:
            payload["kind"] = self.kind
            if self.error:
                payload["error"] = self.error
        return payload
