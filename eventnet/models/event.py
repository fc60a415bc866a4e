from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Event(BaseModel):
    id: str
    name: str
    headline: Optional[str] = None
    description: str = ""
    date_time: Optional[datetime] = None
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    is_verified: bool = False
    attendees: List[str] = Field(default_factory=list)
