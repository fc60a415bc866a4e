from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Intent(str, Enum):
    MEMBER_SEARCH = "MEMBER_SEARCH"
    EVENT_INFO = "EVENT_INFO"
    GENERAL = "GENERAL"


class AnswerSource(BaseModel):
    category: str
    snippet: str


class AssistantAnswer(BaseModel):
    answer: str
    sources: List[AnswerSource] = Field(default_factory=list)
    intent: Optional[Intent] = None
