from .assistant import AnswerSource, AssistantAnswer, Intent
from .embedding import EmbeddingCategory, EmbeddingRecord, VectorMatch
from .event import Event
from .identity import Identity, PersonInput
from .membership import (
    AlreadyMember,
    BulkImportSummary,
    MemberAddResult,
    MembershipEdge,
    MembershipSource,
    ParticipantView,
)

__all__ = [
    "AlreadyMember",
    "AnswerSource",
    "AssistantAnswer",
    "BulkImportSummary",
    "EmbeddingCategory",
    "EmbeddingRecord",
    "Event",
    "Identity",
    "Intent",
    "MemberAddResult",
    "MembershipEdge",
    "MembershipSource",
    "ParticipantView",
    "PersonInput",
    "VectorMatch",
]
