"""
FAISS Vector Store

A local, in-process `VectorStore` backed by FAISS, with one index per
collection persisted under `<data_root>/<collection>/`.

Key Properties
--------------
- Explicit ID management via IndexIDMap2 (string record ids map to int64 ids)
- Cosine similarity: vectors are L2-normalized and searched by inner product
- Upsert replaces any record with the same id
- Metadata filters are evaluated in-process with the `memory` translator
- Concurrency-safe (one RLock guards every collection)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Sequence

import faiss
import numpy as np

from .models import VectorMatch, VectorRecord
from ..config import settings
from ..core.errors import VectorStoreError
from ..filters.algebra import VectorFilter
from ..filters.translators import memory
from ..tenants import ensure_collection_directory, get_collection_data_path

logger = logging.getLogger("rag.faiss")

INDEX_FILENAME = "index.bin"
META_FILENAME = "meta.json"


@dataclass
class _Collection:
    index: Optional[faiss.IndexIDMap2] = None
    records: Dict[int, VectorRecord] = field(default_factory=dict)
    ids: Dict[str, int] = field(default_factory=dict)
    next_id: int = 0


class FaissVectorStore:
    """
    Persistent FAISS store keyed by collection.

    Collections are created on first write. When `data_root` holds a saved
    collection, it is loaded the first time that collection is touched.
    """

    def __init__(
        self,
        data_root: Optional[str] = None,
        default_collection: Optional[str] = None,
    ) -> None:
        """
        Parameters
        ----------
        data_root : Optional[str]
            Directory for persisted collections. Defaults to
            settings.data_root_path.
        default_collection : Optional[str]
            Collection used when a call passes none. Defaults to
            settings.default_collection.
        """
        self._data_root = Path(data_root or settings.data_root_path)
        self._default_collection = default_collection or settings.default_collection
        self._collections: Dict[str, _Collection] = {}
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _name(self, collection: Optional[str]) -> str:
        return collection or self._default_collection

    def _get(self, name: str) -> _Collection:
        state = self._collections.get(name)
        if state is None:
            state = _Collection()
            if (get_collection_data_path(name, self._data_root) / INDEX_FILENAME).exists():
                self._load_into(name, state)
            # Not cached until loaded; a failed load leaves no state behind.
            self._collections[name] = state
        return state

    @staticmethod
    def _as_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
        matrix = np.asarray(vectors, dtype="float32")
        faiss.normalize_L2(matrix)
        return matrix

    # ------------------------------------------------------------------
    # VectorStore API
    # ------------------------------------------------------------------

    async def upsert(
        self,
        records: Sequence[VectorRecord],
        collection: Optional[str] = None,
    ) -> None:
        if not records:
            return

        name = self._name(collection)
        dim = len(records[0].vector)
        for record in records:
            if len(record.vector) != dim:
                raise VectorStoreError(
                    f"Inconsistent embedding dimensionality for record {record.id}",
                    operation="upsert",
                    collection=name,
                    tenant_id=record.tenant_id,
                )

        with self._lock:
            state = self._get(name)
            if state.index is None:
                state.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dim))
            elif state.index.d != dim:
                raise VectorStoreError(
                    f"Vector dimension {dim} does not match collection dimension {state.index.d}",
                    operation="upsert",
                    collection=name,
                    tenant_id=records[0].tenant_id,
                )

            # Last write wins for duplicate ids within one batch.
            batch: Dict[str, VectorRecord] = {r.id: r for r in records}

            ids = np.arange(state.next_id, state.next_id + len(batch), dtype="int64")

            # New vectors go in before replaced ones come out; a failed add changes nothing.
            try:
                state.index.add_with_ids(
                    self._as_matrix([r.vector for r in batch.values()]), ids
                )
            except Exception as exc:
                logger.exception("FAISS add failed for collection %s", name)
                raise VectorStoreError(
                    f"Failed to add vectors to FAISS: {type(exc).__name__}",
                    operation="upsert",
                    collection=name,
                ) from exc

            state.next_id += len(batch)
            replaced = [state.ids[rid] for rid in batch if rid in state.ids]
            if replaced:
                state.index.remove_ids(np.asarray(replaced, dtype="int64"))
                for int_id in replaced:
                    state.records.pop(int_id, None)

            for int_id, record in zip(ids, batch.values()):
                state.records[int(int_id)] = record
                state.ids[record.id] = int(int_id)

        logger.debug(
            "Upserted %d records into %s (%d replaced)", len(batch), name, len(replaced)
        )

    async def query(
        self,
        vector: Sequence[float],
        top_k: int,
        filter: Optional[VectorFilter] = None,
        collection: Optional[str] = None,
    ) -> List[VectorMatch]:
        name = self._name(collection)
        predicate = memory.translate(filter) if filter is not None else None

        with self._lock:
            state = self._get(name)
            if state.index is None or state.index.ntotal == 0 or top_k <= 0:
                return []

            if len(vector) != state.index.d:
                raise VectorStoreError(
                    f"Query dimension {len(vector)} does not match collection dimension {state.index.d}",
                    operation="query",
                    collection=name,
                )

            # Search everything, then filter: FAISS has no metadata filtering.
            scores, idxs = state.index.search(self._as_matrix([vector]), state.index.ntotal)

            matches: List[VectorMatch] = []
            for score, idx in zip(scores[0], idxs[0]):
                idx = int(idx)
                if idx == -1:
                    continue
                record = state.records.get(idx)
                if record is None:
                    continue
                if predicate is not None and not predicate(record.filterable_attributes()):
                    continue
                matches.append(VectorMatch(record=record, score=float(score)))
                if len(matches) >= top_k:
                    break

            return matches

    async def delete(
        self,
        ids: Sequence[str],
        collection: Optional[str] = None,
    ) -> int:
        name = self._name(collection)
        with self._lock:
            state = self._get(name)
            int_ids = [state.ids[rid] for rid in set(ids) if rid in state.ids]
            if not int_ids or state.index is None:
                return 0

            state.index.remove_ids(np.asarray(int_ids, dtype="int64"))
            for int_id in int_ids:
                record = state.records.pop(int_id)
                state.ids.pop(record.id, None)
            return len(int_ids)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def count(self, collection: Optional[str] = None) -> int:
        with self._lock:
            state = self._get(self._name(collection))
            return state.index.ntotal if state.index is not None else 0

    def collections(self) -> List[str]:
        with self._lock:
            return sorted(self._collections)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, collection: Optional[str] = None) -> None:
        """
        Persist a collection's FAISS index and records to disk.
        """
        name = self._name(collection)
        with self._lock:
            state = self._get(name)
            if state.index is None:
                return

            directory = ensure_collection_directory(name, self._data_root)

            try:
                faiss.write_index(state.index, str(directory / INDEX_FILENAME))
            except Exception as exc:
                raise VectorStoreError(
                    f"Failed to write FAISS index: {type(exc).__name__}",
                    operation="save",
                    collection=name,
                ) from exc

            meta = {
                "next_id": state.next_id,
                "records": {
                    str(k): v.model_dump(mode="json") for k, v in state.records.items()
                },
            }

            try:
                with (directory / META_FILENAME).open("w", encoding="utf-8") as f:
                    json.dump(meta, f)
            except Exception as exc:
                raise VectorStoreError(
                    f"Failed to write FAISS metadata: {type(exc).__name__}",
                    operation="save",
                    collection=name,
                ) from exc

            logger.info("Saved collection %s (%d vectors)", name, state.index.ntotal)

    def load(self, collection: Optional[str] = None) -> bool:
        """
        Load a collection from disk, replacing its in-memory state.

        Returns False when nothing has been saved for the collection.
        """
        name = self._name(collection)
        with self._lock:
            if not (get_collection_data_path(name, self._data_root) / INDEX_FILENAME).exists():
                return False
            state = _Collection()
            self._load_into(name, state)
            self._collections[name] = state
            return True

    def _load_into(self, name: str, state: _Collection) -> None:
        directory = get_collection_data_path(name, self._data_root)

        try:
            state.index = faiss.read_index(str(directory / INDEX_FILENAME))
        except Exception as exc:
            raise VectorStoreError(
                f"Failed to read FAISS index: {type(exc).__name__}",
                operation="load",
                collection=name,
            ) from exc

        meta_path = directory / META_FILENAME
        if not meta_path.exists():
            logger.warning("Collection %s has an index but no metadata; starting empty", name)
            state.index = None
            return

        try:
            with meta_path.open("r", encoding="utf-8") as f:
                data = json.load(f)

            state.next_id = int(data.get("next_id", 0))
            state.records = {
                int(k): VectorRecord(**v) for k, v in data.get("records", {}).items()
            }
            state.ids = {record.id: k for k, record in state.records.items()}
        except Exception as exc:
            raise VectorStoreError(
                f"Failed to load FAISS metadata: {type(exc).__name__}",
                operation="load",
                collection=name,
            ) from exc

        logger.info("Loaded collection %s (%d vectors)", name, len(state.records))
