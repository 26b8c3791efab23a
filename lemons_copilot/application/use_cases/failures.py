from __future__ import annotations

from lemons_copilot.application.exceptions import (
    RecordNotFoundError,
    RecordStoreError,
    SearchIndexError,
    TypeSlugUnresolvedError,
)
from lemons_copilot.domain.entities.operation_result import OperationResult

# Exceptions an operation converts into a failure result instead of raising
OPERATION_ERRORS = (RecordNotFoundError, RecordStoreError, SearchIndexError, TypeSlugUnresolvedError)


def failure_from_error(error: Exception, message: str) -> OperationResult:
    """Map an adapter exception onto a structured failure result."""
    if isinstance(error, TypeSlugUnresolvedError):
        # Operator-fixable configuration problem, not a transient one
        return OperationResult.failure("resolution", str(error))
    if isinstance(error, RecordNotFoundError):
        return OperationResult.failure("not_found", str(error))
    return OperationResult.failure("transport", message, error=str(error))


def no_target(record: str, argument: str) -> OperationResult:
    return OperationResult.failure(
        "precondition",
        f"No {record} selected. Open a {record} first or pass {argument}.",
    )
