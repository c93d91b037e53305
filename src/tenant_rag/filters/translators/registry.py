"""
Filter Translator Registry

Maps backend identifiers to pure translation functions
`VectorFilter -> native query`. The six built-in backends are registered at
import time; callers may register more or replace one.

Thread Safety
-------------
- The registry is protected by an RLock
- Translators themselves hold no state
"""

from __future__ import annotations

from threading import RLock
from typing import Any, Callable, Dict, List, Optional

from . import memory, milvus, pgvector, pinecone, qdrant, weaviate
from ..algebra import VectorFilter
from ...core.errors import FilterTranslationError

Translator = Callable[[VectorFilter], Any]


# ---------------------------------------------------------------------
# Global Translator Registry
# ---------------------------------------------------------------------

_translators: Dict[str, Translator] = {}
_registry_lock = RLock()


def register_translator(backend: str, translator: Translator) -> None:
    """Register (or replace) the translator for a backend."""
    if not backend:
        raise ValueError("backend identifier is required")
    with _registry_lock:
        _translators[backend] = translator


def get_translator(backend: str) -> Translator:
    """
    Return the translator registered for a backend.

    Raises
    ------
    FilterTranslationError
        If no translator is registered under that identifier.
    """
    with _registry_lock:
        translator = _translators.get(backend)
    if translator is None:
        raise FilterTranslationError(
            f"No filter translator registered for backend {backend!r}"
        )
    return translator


def translate(filter: Optional[VectorFilter], backend: str) -> Any:
    """
    Translate a filter tree for a backend.

    A `None` filter means "no filtering" and translates to `None` for every
    backend, though the backend must still be known.
    """
    translator = get_translator(backend)
    if filter is None:
        return None
    return translator(filter)


def available_backends() -> List[str]:
    with _registry_lock:
        return sorted(_translators)


for _module in (qdrant, pinecone, milvus, weaviate, pgvector, memory):
    register_translator(_module.BACKEND, _module.translate)
