"""Event-scoped vector index over Pinecone with an in-process fallback store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from eventnet.core.database import DatabaseManager, database_manager
from eventnet.models import EmbeddingCategory, EmbeddingRecord, VectorMatch

logger = logging.getLogger(__name__)


def _namespace(event_id: str) -> str:
    return f"event-{event_id}"


def _record_id(category: EmbeddingCategory, subject_key: str) -> str:
    return f"{category.value}:{subject_key}"


class EventVectorIndex:
    """Stores (event, category, subject key) records; each event is its own namespace.

    Upserting an existing (event, category, subject key) replaces the previous record.
    """

    def __init__(self, manager: DatabaseManager | None = None) -> None:
        self._manager = manager or database_manager
        self._fallback_store: Dict[Tuple[str, str], EmbeddingRecord] = {}

    @property
    def index(self):
        return self._manager.index

    async def upsert(
        self,
        event_id: str,
        category: EmbeddingCategory,
        subject_key: str,
        text: str,
        vector: List[float],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        record = EmbeddingRecord(
            event_id=event_id,
            category=category,
            subject_key=subject_key,
            text=text,
            vector=list(vector),
            metadata=dict(metadata or {}),
        )
        index = self.index
        if index is None:
            self._fallback_store[(event_id, record.record_id)] = record
            return

        payload = {
            key: value
            for key, value in record.metadata.items()
            if value is not None and value != ""
        }
        payload.update({"category": category.value, "subject_key": subject_key, "text": text})
        await asyncio.to_thread(
            index.upsert,
            vectors=[(record.record_id, record.vector, payload)],
            namespace=_namespace(event_id),
        )

    async def query(
        self,
        vector: List[float],
        event_id: str,
        category: EmbeddingCategory,
        *,
        limit: int,
        min_similarity: float,
    ) -> List[VectorMatch]:
        """Return up to ``limit`` matches within the event and category, best first."""

        if not vector:
            return []

        index = self.index
        if index is None:
            return self._query_fallback(vector, event_id, category, limit, min_similarity)

        response = await asyncio.to_thread(
            index.query,
            vector=list(vector),
            top_k=limit,
            namespace=_namespace(event_id),
            filter={"category": {"$eq": category.value}},
            include_metadata=True,
        )
        matches: List[VectorMatch] = []
        for match in response.matches:
            if match.score < min_similarity:
                continue
            metadata = dict(match.metadata or {})
            matches.append(
                VectorMatch(
                    event_id=event_id,
                    category=category,
                    subject_key=str(metadata.pop("subject_key", match.id.split(":", 1)[-1])),
                    text=str(metadata.pop("text", "")),
                    score=float(match.score),
                    metadata={k: v for k, v in metadata.items() if k != "category"},
                )
            )
        return matches

    async def delete(self, event_id: str, category: EmbeddingCategory, subject_key: str) -> None:
        record_id = _record_id(category, subject_key)
        index = self.index
        if index is None:
            self._fallback_store.pop((event_id, record_id), None)
            return
        await asyncio.to_thread(index.delete, ids=[record_id], namespace=_namespace(event_id))

    async def purge_event(self, event_id: str) -> None:
        index = self.index
        if index is None:
            for key in [key for key in self._fallback_store if key[0] == event_id]:
                del self._fallback_store[key]
            return
        await asyncio.to_thread(index.delete, delete_all=True, namespace=_namespace(event_id))

    def get_fallback_record(
        self, event_id: str, category: EmbeddingCategory, subject_key: str
    ) -> Optional[EmbeddingRecord]:
        return self._fallback_store.get((event_id, _record_id(category, subject_key)))

    def _query_fallback(
        self,
        vector: List[float],
        event_id: str,
        category: EmbeddingCategory,
        limit: int,
        min_similarity: float,
    ) -> List[VectorMatch]:
        results: List[VectorMatch] = []
        for (record_event, _), record in self._fallback_store.items():
            if record_event != event_id or record.category != category:
                continue
            score = self._cosine_similarity(vector, record.vector)
            if score < min_similarity:
                continue
            results.append(
                VectorMatch(
                    event_id=event_id,
                    category=category,
                    subject_key=record.subject_key,
                    text=record.text,
                    score=score,
                    metadata=dict(record.metadata),
                )
            )

        results.sort(key=lambda match: match.score, reverse=True)
        return results[:limit]

    @staticmethod
    def _cosine_similarity(lhs: List[float], rhs: List[float]) -> float:
        if not lhs or not rhs or len(lhs) != len(rhs):
            return 0.0
        dot = sum(l * r for l, r in zip(lhs, rhs))
        lhs_norm = sum(l * l for l in lhs) ** 0.5
        rhs_norm = sum(r * r for r in rhs) ** 0.5
        if lhs_norm == 0 or rhs_norm == 0:
            return 0.0
        return dot / (lhs_norm * rhs_norm)


vector_index = EventVectorIndex()
