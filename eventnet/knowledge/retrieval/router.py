"""Retrieval router: direct structured answers, scoped vector search, or a canned reply."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from eventnet.core.config import settings
from eventnet.knowledge.vector.embeddings import EmbeddingGenerator, embedding_generator
from eventnet.knowledge.vector.index import EventVectorIndex, vector_index
from eventnet.members.ledger import MembershipLedger
from eventnet.members.repository import MemberRepository
from eventnet.models import AnswerSource, AssistantAnswer, EmbeddingCategory, Event, Intent, VectorMatch

logger = logging.getLogger(__name__)

GREETING_ANSWER = "Hello! I am your Event Assistant. Ask me about the event details, agenda, or attendees."
NO_MEMBERS_ANSWER = "No matching members found."
NOT_AVAILABLE_ANSWER = "This information is not available."

COUNT_PATTERN = re.compile(r"\b(how many|count|total|number of)\b", re.IGNORECASE)
LOGISTICS_PATTERN = re.compile(r"\b(when|time|date|start|end|venue|location|where|address)\b", re.IGNORECASE)
CONTENT_PATTERN = re.compile(r"\b(agenda|topics?)\b", re.IGNORECASE)

# Answer paths, also used as metric labels.
PATH_CANNED = "canned"
PATH_COUNT = "direct_count"
PATH_FIELDS = "direct_fields"
PATH_NO_MATCHES = "no_matches"
PATH_VECTOR = "vector"


@dataclass
class RetrievalOutcome:
    """Either a finished answer, or matches that still need synthesis."""

    path: str
    answer: Optional[AssistantAnswer] = None
    matches: List[VectorMatch] = field(default_factory=list)

    @property
    def needs_synthesis(self) -> bool:
        return self.answer is None


def format_event_date(event: Event) -> str:
    if event.date_time is None:
        return "TBD"
    return event.date_time.strftime("%B %d, %Y at %I:%M %p")


class RetrievalRouter:
    """Stateless per request; every search is scoped to a single event."""

    def __init__(
        self,
        repository: MemberRepository,
        ledger: MembershipLedger,
        *,
        embedder: EmbeddingGenerator | None = None,
        index: EventVectorIndex | None = None,
    ) -> None:
        self.repository = repository
        self.ledger = ledger
        self.embedder = embedder or embedding_generator
        self.index = index or vector_index
        self.threshold = settings.SIMILARITY_THRESHOLD

    async def route(self, event_id: str, question: str, intent: Intent) -> RetrievalOutcome:
        if intent is Intent.MEMBER_SEARCH:
            return await self._member_search(event_id, question)
        if intent is Intent.EVENT_INFO:
            return await self._event_info(event_id, question)
        return RetrievalOutcome(path=PATH_CANNED, answer=AssistantAnswer(answer=GREETING_ANSWER, intent=intent))

    async def _member_search(self, event_id: str, question: str) -> RetrievalOutcome:
        intent = Intent.MEMBER_SEARCH
        if COUNT_PATTERN.search(question):
            count = await self.ledger.count_members(event_id)
            return RetrievalOutcome(
                path=PATH_COUNT,
                answer=AssistantAnswer(
                    answer=f"There are currently {count} members attending this event.",
                    sources=[AnswerSource(category="db_count", snippet=f"Total: {count}")],
                    intent=intent,
                ),
            )

        vector = await self.embedder.embed(question)
        matches = await self.index.query(
            vector,
            event_id,
            EmbeddingCategory.MEMBER_PROFILE,
            limit=settings.MEMBER_SEARCH_LIMIT,
            min_similarity=self.threshold,
        )
        if not matches:
            return RetrievalOutcome(path=PATH_NO_MATCHES, answer=AssistantAnswer(answer=NO_MEMBERS_ANSWER, intent=intent))
        return RetrievalOutcome(path=PATH_VECTOR, matches=matches)

    async def _event_info(self, event_id: str, question: str) -> RetrievalOutcome:
        intent = Intent.EVENT_INFO
        if LOGISTICS_PATTERN.search(question) and not CONTENT_PATTERN.search(question):
            event = await self.repository.get_event(event_id)
            if event is not None:
                location = event.location or "TBD"
                date = format_event_date(event)
                return RetrievalOutcome(
                    path=PATH_FIELDS,
                    answer=AssistantAnswer(
                        answer=f"The event is located at {location}. It is scheduled for {date}.",
                        sources=[AnswerSource(category="db_meta", snippet=f"Location: {location}, Date: {date}")],
                        intent=intent,
                    ),
                )
            logger.info("Event %s not found for direct lookup; searching event knowledge", event_id)

        vector = await self.embedder.embed(question)
        metadata_matches, document_matches = await asyncio.gather(
            self.index.query(
                vector,
                event_id,
                EmbeddingCategory.EVENT_METADATA,
                limit=settings.EVENT_METADATA_LIMIT,
                min_similarity=self.threshold,
            ),
            self.index.query(
                vector,
                event_id,
                EmbeddingCategory.EVENT_DOCUMENT,
                limit=settings.EVENT_DOCUMENT_LIMIT,
                min_similarity=self.threshold,
            ),
        )
        matches = metadata_matches + document_matches
        if not matches:
            return RetrievalOutcome(path=PATH_NO_MATCHES, answer=AssistantAnswer(answer=NOT_AVAILABLE_ANSWER, intent=intent))
        return RetrievalOutcome(path=PATH_VECTOR, matches=matches)
