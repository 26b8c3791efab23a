from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from lemons_copilot.domain.entities.operation_result import OperationResult
from lemons_copilot.domain.entities.transcript import ActionInvocation, ActionResult, Transcript

OperationHandler = Callable[..., Awaitable[OperationResult]]


@dataclass(frozen=True)
class OperationSpec:
    name: str
    description: str
    parameters: dict[str, Any]  # JSON schema object
    handler: OperationHandler

    def get_schema(self) -> dict[str, Any]:
        """Tool schema for LLM function calling."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class OperationRegistry:
    """Declared model-invocable operations.

    `invoke` records an invocation entry, runs the handler and records the
    linked result entry. Failures come back as results; nothing is raised.
    """

    def __init__(self, transcript: Transcript | None = None) -> None:
        self._transcript = transcript
        self._operations: dict[str, OperationSpec] = {}
        self._logger = logging.getLogger(__name__)

    def register(self, spec: OperationSpec) -> None:
        if spec.name in self._operations:
            raise ValueError(f"Operation '{spec.name}' already registered")
        self._operations[spec.name] = spec

    def get(self, name: str) -> OperationSpec | None:
        return self._operations.get(name)

    def names(self) -> list[str]:
        return list(self._operations.keys())

    def schema(self) -> list[dict[str, Any]]:
        return [spec.get_schema() for spec in self._operations.values()]

    async def invoke(self, name: str, args: dict[str, Any] | None = None) -> OperationResult:
        args = dict(args or {})
        invocation: ActionInvocation | None = None
        if self._transcript is not None:
            invocation = self._transcript.append(ActionInvocation(name=name, arguments=args))

        result = await self.run(name, args)

        if self._transcript is not None and invocation is not None:
            self._transcript.append(
                ActionResult(invocation_id=invocation.id, name=name, result=result.to_payload())
            )
        return result

    async def run(self, name: str, args: dict[str, Any]) -> OperationResult:
        """Validate and execute without touching the transcript."""
        spec = self._operations.get(name)
        if spec is None:
            return OperationResult.failure("validation", f"Unknown operation: {name}")

        error = validate_args(spec.parameters, args)
        if error:
            return OperationResult.failure("validation", error)

        try:
            return await spec.handler(**{k: v for k, v in args.items() if v is not None})
        except Exception as e:
            self._logger.exception("Operation crashed", extra={"operation": name, "reason": str(e)})
            return OperationResult.failure("internal", f"{name} failed unexpectedly.", error=str(e))


def validate_args(parameters: dict[str, Any], args: dict[str, Any]) -> str | None:
    """Check required and unknown keys plus primitive types. Returns an error message or None."""
    properties: dict[str, Any] = parameters.get("properties", {})

    for field in parameters.get("required", []):
        if args.get(field) is None:
            return f"Missing required argument: {field}"

    for key, value in args.items():
        if key not in properties:
            return f"Unknown argument: {key}"
        if value is None:
            continue
        expected = properties[key].get("type")
        if expected == "string" and not isinstance(value, str):
            return f"Argument '{key}' must be a string"
        if expected in ("number", "integer") and (
            isinstance(value, bool) or not isinstance(value, (int, float, str))
        ):
            return f"Argument '{key}' must be a number"
        if expected == "array" and not isinstance(value, (list, tuple, str)):
            return f"Argument '{key}' must be a list or a comma separated string"

    return None
