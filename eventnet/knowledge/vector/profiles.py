"""Profile embedding indexer for member profiles and event knowledge.

Every public operation here is best effort: failures are logged and reported through the
return value, never raised, so membership writes and event edits never depend on the
embedding backend being healthy.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from eventnet.core.config import settings
from eventnet.knowledge.ingestion.chunkers import TextChunker
from eventnet.knowledge.vector.embeddings import EmbeddingGenerator, embedding_generator
from eventnet.knowledge.vector.index import EventVectorIndex, vector_index
from eventnet.models import EmbeddingCategory, Event, Identity
from eventnet.orchestration.hooks import MEMBER_ADDED, MEMBER_REMOVED, PROFILE_UPDATED, PostCommitHooks
from eventnet.utils.monitoring import observe_index_write
from eventnet.utils.text import clean_text_for_embedding, redact_phone_numbers

logger = logging.getLogger(__name__)


def build_profile_text(identity: Identity) -> str:
    """``Name: X . Company: Y . Description: Z`` with empty parts omitted and no phone numbers."""

    parts = [
        f"Name: {identity.name}" if identity.name else None,
        f"Company: {identity.company}" if identity.company else None,
        f"Description: {identity.bio}" if identity.bio else None,
    ]
    raw = " . ".join(part for part in parts if part)
    return clean_text_for_embedding(redact_phone_numbers(raw, identity.phone))


def build_event_text(event: Event) -> str:
    parts = [
        event.name,
        event.headline,
        event.description,
        ", ".join(event.tags) if event.tags else None,
        event.location,
    ]
    return clean_text_for_embedding(". ".join(part for part in parts if part))


class ProfileIndexer:
    """Keeps the event vector index in step with member profiles and event content."""

    def __init__(
        self,
        embedder: EmbeddingGenerator | None = None,
        index: EventVectorIndex | None = None,
        chunker: TextChunker | None = None,
    ) -> None:
        self.embedder = embedder or embedding_generator
        self.index = index or vector_index
        self.chunker = chunker or TextChunker()
        # Per (event, identity) lock and holder count; hook handlers for one member run in publish order.
        self._subject_locks: Dict[Tuple[str, str], List[Any]] = {}

    def register(self, hooks: PostCommitHooks) -> None:
        hooks.subscribe(MEMBER_ADDED, self._on_profile_changed)
        hooks.subscribe(PROFILE_UPDATED, self._on_profile_changed)
        hooks.subscribe(MEMBER_REMOVED, self._on_member_removed)

    async def index_member_profile(self, event_id: str, identity: Identity) -> bool:
        category = EmbeddingCategory.MEMBER_PROFILE
        text = build_profile_text(identity)
        if not text:
            logger.warning("Empty profile text for identity %s; skipping embedding", identity.id)
            observe_index_write(category.value, "skipped")
            return False

        metadata = {
            "user_id": identity.id,
            "name": identity.name,
            "company": identity.company or "",
            "bio": identity.bio or "",
            # Side channel only; never part of the embedded text.
            "phoneNumber": identity.phone,
        }
        return await self._store(event_id, category, identity.id, text, metadata)

    async def deindex_member_profile(self, event_id: str, identity_id: str) -> bool:
        try:
            await self.index.delete(event_id, EmbeddingCategory.MEMBER_PROFILE, identity_id)
        except Exception as exc:
            logger.warning("Failed to delete member embedding %s/%s: %s", event_id, identity_id, exc)
            return False
        return True

    async def index_event_metadata(self, event: Event) -> bool:
        text = build_event_text(event)
        if not text:
            return False
        metadata = {
            "name": event.name,
            "location": event.location or "",
            "date_time": event.date_time.isoformat() if event.date_time else "",
        }
        return await self._store(event.id, EmbeddingCategory.EVENT_METADATA, event.id, text, metadata)

    async def index_event_document(self, event_id: str, document_id: str, text: str) -> int:
        """Chunk extracted document text and index each chunk; returns the number stored."""

        chunks = self.chunker.chunk(
            text,
            chunk_size=settings.DOCUMENT_CHUNK_SIZE,
            overlap=settings.DOCUMENT_CHUNK_OVERLAP,
        )
        stored = 0
        for position, chunk in enumerate(chunks):
            subject_key = f"{document_id}::{position}"
            metadata = {"document_id": document_id, "chunk_index": position}
            if await self._store(event_id, EmbeddingCategory.EVENT_DOCUMENT, subject_key, chunk, metadata):
                stored += 1
        logger.info("Indexed %s/%s chunks of document %s for event %s", stored, len(chunks), document_id, event_id)
        return stored

    async def purge_event(self, event_id: str) -> bool:
        try:
            await self.index.purge_event(event_id)
        except Exception as exc:
            logger.warning("Failed to purge embeddings for event %s: %s", event_id, exc)
            return False
        return True

    async def _store(
        self,
        event_id: str,
        category: EmbeddingCategory,
        subject_key: str,
        text: str,
        metadata: Dict[str, Any],
    ) -> bool:
        try:
            vector = await self.embedder.embed(text)
            if not vector:
                logger.warning("No embedding generated for %s %s", category.value, subject_key)
                observe_index_write(category.value, "empty_vector")
                return False
            await self.index.upsert(event_id, category, subject_key, text, vector, metadata)
        except Exception as exc:
            logger.error("Embedding creation failed for %s %s: %s", category.value, subject_key, exc)
            observe_index_write(category.value, "failed")
            return False
        observe_index_write(category.value, "stored")
        return True

    @asynccontextmanager
    async def _member_lock(self, event_id: str, identity_id: str) -> AsyncIterator[None]:
        key = (event_id, identity_id)
        entry = self._subject_locks.get(key)
        if entry is None:
            entry = self._subject_locks[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._subject_locks[key]

    async def _on_profile_changed(self, payload: Dict[str, Any]) -> Optional[bool]:
        identity = Identity.model_validate(payload["identity"])
        async with self._member_lock(payload["event_id"], identity.id):
            return await self.index_member_profile(payload["event_id"], identity)

    async def _on_member_removed(self, payload: Dict[str, Any]) -> Optional[bool]:
        async with self._member_lock(payload["event_id"], payload["identity_id"]):
            return await self.deindex_member_profile(payload["event_id"], payload["identity_id"])


profile_indexer = ProfileIndexer()
