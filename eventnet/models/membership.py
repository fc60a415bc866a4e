"""Membership and roster data models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MembershipSource(str, Enum):
    SELF_JOIN = "join"
    MANUAL = "manual"
    SPREADSHEET = "excel"


class MembershipEdge(BaseModel):
    """Ties one identity to one event, with provenance."""

    event_id: str
    organizer_id: str
    identity_id: Optional[str] = None
    name: str
    phone: Optional[str] = None
    source: MembershipSource = MembershipSource.SELF_JOIN
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_joined: bool = True


class AlreadyMember(BaseModel):
    """No-op outcome: the identity already holds an edge for the event."""

    event_id: str
    identity_id: str


class MemberAddResult(BaseModel):
    success: bool
    identity_id: str = ""
    is_new_identity: bool = False
    is_existing_member: bool = False
    embedding_scheduled: bool = False
    message: str = ""
    error: Optional[str] = None


class BulkImportSummary(BaseModel):
    total_processed: int = 0
    added: int = 0
    skipped: int = 0
    failed: int = 0
    results: List[MemberAddResult] = Field(default_factory=list)


class ParticipantView(BaseModel):
    """One deduplicated roster row."""

    identity_id: Optional[str] = None
    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    bio: Optional[str] = None
    source: str = MembershipSource.SELF_JOIN.value
