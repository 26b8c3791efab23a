class RecordStoreError(RuntimeError):
    """Raised when the Data API answers non-2xx or the request fails in transport."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class SearchIndexError(RuntimeError):
    """Raised when the hosted search index fails (network errors, non-2xx answers)."""
    pass


class TypeSlugUnresolvedError(RuntimeError):
    """Raised when no collection name could be resolved for a record category."""

    def __init__(self, category: str) -> None:
        super().__init__(
            f"Integration not configured: could not resolve the {category} data type. "
            f"Set BUBBLE_{category.upper()}_TYPE to the exact type name."
        )
        self.category = category


class TranscriptRestoreError(RuntimeError):
    """Raised when a persisted transcript cannot be reconstructed faithfully."""
    pass


class AssistantUpstreamError(RuntimeError):
    """Raised when the LLM provider fails (timeouts, network errors, service unavailable)."""
    pass


class AssistantContractError(RuntimeError):
    """Raised when the LLM provider answers with an unusable shape (bad tool arguments, no choices)."""
    pass


class RecordNotFoundError(LookupError):
    """Raised when a record id does not exist in its collection."""

    def __init__(self, category: str, record_id: str) -> None:
        super().__init__(f"No {category} found with id {record_id}")
        self.category = category
        self.record_id = record_id
