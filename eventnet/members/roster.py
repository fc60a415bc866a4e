"""Roster aggregation across current and legacy membership shapes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from eventnet.core.database import COMMUNITY_CONNECTIONS, EVENT_CONNECTIONS, EVENT_MEMBERS
from eventnet.members.repository import EventKey, MemberRepository, stringify_id, to_object_id
from eventnet.models import Identity, MembershipSource, ParticipantView
from eventnet.utils.text import normalize_email, normalize_phone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterSource:
    """One membership collection and the field that holds the person reference."""

    name: str
    collection: str
    identity_field: str


# Iteration order decides which duplicate survives: direct memberships first.
MEMBERSHIP_SOURCES: Sequence[RosterSource] = (
    RosterSource("event_members", EVENT_MEMBERS, "userId"),
    RosterSource("community_connections", COMMUNITY_CONNECTIONS, "participantId"),
    RosterSource("event_connections", EVENT_CONNECTIONS, "participantId"),
)
ATTENDEES = "event_attendees"


@dataclass
class RawRecord:
    source_name: str
    identity_id: Optional[str]
    document: Dict[str, Any]


class RosterAggregator:
    """Union every membership representation of an event into one sorted, deduplicated roster."""

    def __init__(self, repository: MemberRepository) -> None:
        self.repository = repository

    async def list_participants(self, event_id: str) -> List[ParticipantView]:
        records = await self.collect(event_id)
        identities = await self.repository.get_identities(
            {record.identity_id for record in records if record.identity_id}
        )
        views = [normalize_record(record, identities) for record in records]
        roster = deduplicate(views)
        logger.debug(
            "Aggregated roster",
            extra={"event_id": event_id, "raw": len(records), "participants": len(roster)},
        )
        return sort_roster(roster)

    async def collect(self, event_id: str) -> List[RawRecord]:
        """Read all four sources by the structured id, falling back to the raw string form."""

        structured = to_object_id(event_id)
        records: List[RawRecord] = []
        if structured is not None:
            records = await self._read_all(structured)
        if records:
            return records

        documents = await self.repository.find_membership_documents(EVENT_MEMBERS, event_id)
        primary = MEMBERSHIP_SOURCES[0]
        return [_from_document(primary, doc) for doc in documents]

    async def _read_all(self, event_key: EventKey) -> List[RawRecord]:
        batches = await asyncio.gather(
            *(self.repository.find_membership_documents(source.collection, event_key) for source in MEMBERSHIP_SOURCES),
            self.repository.find_event_attendees(event_key),
        )
        records: List[RawRecord] = []
        for source, documents in zip(MEMBERSHIP_SOURCES, batches):
            records.extend(_from_document(source, doc) for doc in documents)
        for attendee in batches[-1]:
            records.append(RawRecord(source_name=ATTENDEES, identity_id=stringify_id(attendee), document={}))
        return records


def _from_document(source: RosterSource, document: Dict[str, Any]) -> RawRecord:
    return RawRecord(
        source_name=source.name,
        identity_id=stringify_id(document.get(source.identity_field)),
        document=document,
    )


def normalize_record(record: RawRecord, identities: Dict[str, Identity]) -> ParticipantView:
    """Merge the edge snapshot with the referenced identity; snapshot fields take precedence."""

    doc = record.document
    identity = identities.get(record.identity_id or "")

    def pick(doc_field: str, identity_attr: str) -> Optional[str]:
        value = doc.get(doc_field)
        if value:
            return str(value).strip() or None
        if identity is not None:
            return getattr(identity, identity_attr) or None
        return None

    return ParticipantView(
        identity_id=record.identity_id,
        name=pick("name", "name") or "",
        phone=normalize_phone(pick("phoneNumber", "phone")),
        email=normalize_email(pick("email", "email")),
        company=pick("company", "company"),
        bio=pick("bio", "bio"),
        source=str(doc.get("source") or MembershipSource.SELF_JOIN.value),
    )


def dedup_keys(view: ParticipantView) -> List[Tuple[str, str]]:
    keys: List[Tuple[str, str]] = []
    if view.phone:
        keys.append(("phone", view.phone))
    if view.email:
        keys.append(("email", view.email))
    if view.identity_id:
        keys.append(("identity", view.identity_id))
    return keys


def deduplicate(views: Iterable[ParticipantView]) -> List[ParticipantView]:
    """First writer wins on any shared phone, email or identity id.

    Records with none of the three cannot be keyed and are dropped.
    """

    arena: List[ParticipantView] = []
    index: Dict[Tuple[str, str], int] = {}
    dropped = 0
    for view in views:
        keys = dedup_keys(view)
        if not keys:
            dropped += 1
            continue
        if any(key in index for key in keys):
            continue
        for key in keys:
            index[key] = len(arena)
        arena.append(view)
    if dropped:
        logger.warning("Dropped %s roster records without phone, email or identity id", dropped)
    return arena


def sort_roster(views: List[ParticipantView]) -> List[ParticipantView]:
    # sorted() is stable, so equal names keep input order.
    return sorted(views, key=lambda view: view.name.casefold())
