"""
Error Taxonomy

This module defines the exceptions raised across the RAG core.

Categories
----------
- Validation errors are raised synchronously before any I/O
  (`InvalidTenantError` lives in `tenant_rag.tenants`; option and request
  models raise pydantic's `ValidationError`).
- Unsupported operations are raised by filter translators when a filter
  cannot be represented in a backend's native query language. They are never
  silently approximated.
- Backend errors wrap transport or storage failures with enough context
  (operation, collection, tenant) to diagnose. Nothing in this package
  retries; callers that want retries wrap these calls.
- Partial failures during indexing are not exceptions; they are collected in
  `IndexResult.errors`.
"""

from __future__ import annotations

from typing import Any, Optional


# ---------------------------------------------------------------------
# Filter Translation
# ---------------------------------------------------------------------

class FilterTranslationError(ValueError):
    """Raised when a filter tree cannot be translated for a backend."""


class UnsupportedFilterOperatorError(FilterTranslationError):
    """
    Raised when a filter operator has no native form in a backend.

    Attributes
    ----------
    operator : Any
        The offending operator (usually a `FilterOperator`).
    backend : str
        Identifier of the backend the translation targeted.
    """

    def __init__(self, operator: Any, backend: str, detail: Optional[str] = None) -> None:
        self.operator = operator
        self.backend = backend
        name = getattr(operator, "name", str(operator))
        message = f"Unsupported operator {name} for backend {backend}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# ---------------------------------------------------------------------
# Backend / Transport
# ---------------------------------------------------------------------

class VectorStoreError(RuntimeError):
    """
    Raised when a vector store operation fails.

    The message always names the operation and, when known, the collection
    and tenant so that a log line alone is enough to locate the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        collection: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.collection = collection
        self.tenant_id = tenant_id

        context = [f"operation={operation}"]
        if collection is not None:
            context.append(f"collection={collection}")
        if tenant_id is not None:
            context.append(f"tenant={tenant_id}")

        super().__init__(f"{message} ({', '.join(context)})")


class RetrievalError(VectorStoreError):
    """Raised when the similarity search behind a retrieval fails."""


class ChatCompletionError(RuntimeError):
    """Raised when the chat model call fails or returns a malformed payload."""
