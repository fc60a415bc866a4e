"""Vector index records."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class EmbeddingCategory(str, Enum):
    EVENT_METADATA = "meta"
    EVENT_DOCUMENT = "doc"
    MEMBER_PROFILE = "member"

    @property
    def label(self) -> str:
        return {"meta": "EVENT", "doc": "DOCUMENT", "member": "MEMBER"}[self.value]


class EmbeddingRecord(BaseModel):
    event_id: str
    category: EmbeddingCategory
    subject_key: str
    text: str
    vector: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return f"{self.category.value}:{self.subject_key}"


class VectorMatch(BaseModel):
    event_id: str
    category: EmbeddingCategory
    subject_key: str
    text: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
