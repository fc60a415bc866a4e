"""Document store adapter for identities, events and membership collections."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from eventnet.core.database import (
    EVENT_MEMBERS,
    EVENTS,
    USERS,
    DatabaseManager,
    database_manager,
)
from eventnet.core.exceptions import ConflictError, UpstreamUnavailableError
from eventnet.models import Event, Identity, MembershipEdge, MembershipSource

logger = logging.getLogger(__name__)

EventKey = Union[ObjectId, str]


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return the structured id form of ``value``, or ``None`` when it is not a valid ObjectId."""

    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def stringify_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict) and "_id" in value:
        value = value["_id"]
    text = str(value).strip()
    return text or None


def identity_from_document(doc: Dict[str, Any]) -> Identity:
    return Identity(
        id=str(doc["_id"]),
        name=doc.get("name") or "",
        email=doc.get("email") or "",
        phone=doc.get("phoneNumber"),
        company=doc.get("company"),
        bio=doc.get("oneLiner"),
        website=doc.get("website"),
        role=doc.get("role") or "member",
        created_at=doc.get("createdAt"),
    )


def event_from_document(doc: Dict[str, Any]) -> Event:
    return Event(
        id=str(doc["_id"]),
        name=doc.get("name") or "",
        headline=doc.get("headline"),
        description=doc.get("description") or "",
        date_time=doc.get("dateTime"),
        location=doc.get("location"),
        tags=list(doc.get("tags") or []),
        created_by=stringify_id(doc.get("createdBy")),
        is_verified=bool(doc.get("isVerified", False)),
        attendees=[str(a) for a in doc.get("attendees") or []],
    )


def membership_from_document(doc: Dict[str, Any]) -> MembershipEdge:
    try:
        source = MembershipSource(doc.get("source") or MembershipSource.SELF_JOIN.value)
    except ValueError:
        source = MembershipSource.MANUAL
    return MembershipEdge(
        event_id=str(doc["eventId"]),
        organizer_id=str(doc.get("organizerId") or ""),
        identity_id=stringify_id(doc.get("userId")),
        name=doc.get("name") or "",
        phone=doc.get("phoneNumber"),
        source=source,
        joined_at=doc.get("joinedAt") or datetime.now(timezone.utc),
        is_joined=bool(doc.get("isJoined", True)),
    )


class MemberRepository(Protocol):
    """Storage contract consumed by the resolver, ledger and roster aggregator."""

    async def get_identity(self, identity_id: str) -> Optional[Identity]:
        ...

    async def get_identities(self, identity_ids: Iterable[str]) -> Dict[str, Identity]:
        ...

    async def find_identity_by_phone(self, phone: str) -> Optional[Identity]:
        ...

    async def find_identity_by_email(self, email: str) -> Optional[Identity]:
        ...

    async def find_identity_by_name_company(self, name: str, company: str) -> Optional[Identity]:
        ...

    async def phone_exists(self, phone: str) -> bool:
        ...

    async def insert_identity(self, fields: Dict[str, Any]) -> Identity:
        ...

    async def update_identity(self, identity_id: str, updates: Dict[str, Any]) -> Optional[Identity]:
        ...

    async def get_event(self, event_id: str) -> Optional[Event]:
        ...

    async def insert_membership(self, edge: MembershipEdge) -> MembershipEdge:
        ...

    async def get_membership(self, event_id: str, identity_id: str) -> Optional[MembershipEdge]:
        ...

    async def delete_membership(self, event_id: str, identity_id: str) -> int:
        ...

    async def count_memberships(self, event_id: str) -> int:
        ...

    async def find_membership_documents(self, collection: str, event_key: EventKey) -> List[Dict[str, Any]]:
        ...

    async def find_event_attendees(self, event_key: EventKey) -> List[Any]:
        ...


class MongoMemberRepository:
    """MongoDB implementation of :class:`MemberRepository` backed by motor."""

    def __init__(self, manager: DatabaseManager | None = None) -> None:
        self._manager = manager or database_manager

    @property
    def db(self) -> AsyncIOMotorDatabase:
        db = self._manager.db
        if db is None:
            raise UpstreamUnavailableError("Document store is not initialized")
        return db

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    async def get_identity(self, identity_id: str) -> Optional[Identity]:
        oid = to_object_id(identity_id)
        if oid is None:
            return None
        doc = await self.db[USERS].find_one({"_id": oid})
        return identity_from_document(doc) if doc else None

    async def get_identities(self, identity_ids: Iterable[str]) -> Dict[str, Identity]:
        oids = [oid for oid in (to_object_id(i) for i in identity_ids) if oid is not None]
        if not oids:
            return {}
        cursor = self.db[USERS].find({"_id": {"$in": oids}})
        return {str(doc["_id"]): identity_from_document(doc) async for doc in cursor}

    async def find_identity_by_phone(self, phone: str) -> Optional[Identity]:
        doc = await self.db[USERS].find_one({"phoneNumber": phone})
        return identity_from_document(doc) if doc else None

    async def find_identity_by_email(self, email: str) -> Optional[Identity]:
        doc = await self.db[USERS].find_one({"email": email.lower()})
        return identity_from_document(doc) if doc else None

    async def find_identity_by_name_company(self, name: str, company: str) -> Optional[Identity]:
        doc = await self.db[USERS].find_one(
            {
                "name": {"$regex": f"^{re.escape(name)}$", "$options": "i"},
                "company": {"$regex": f"^{re.escape(company)}$", "$options": "i"},
            }
        )
        return identity_from_document(doc) if doc else None

    async def phone_exists(self, phone: str) -> bool:
        return await self.db[USERS].count_documents({"phoneNumber": phone}, limit=1) > 0

    async def insert_identity(self, fields: Dict[str, Any]) -> Identity:
        now = datetime.now(timezone.utc)
        document = {
            "name": fields["name"],
            "email": fields["email"].lower(),
            "phoneNumber": fields.get("phone"),
            "company": fields.get("company") or None,
            "oneLiner": fields.get("bio") or None,
            "website": fields.get("website") or None,
            "role": fields.get("role") or "member",
            "connectionCount": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self.db[USERS].insert_one(document)
        except DuplicateKeyError as exc:
            raise ConflictError(
                "Identity with this phone or email already exists",
                details={"email": document["email"], "phone": document["phoneNumber"]},
            ) from exc
        document["_id"] = result.inserted_id
        return identity_from_document(document)

    async def update_identity(self, identity_id: str, updates: Dict[str, Any]) -> Optional[Identity]:
        oid = to_object_id(identity_id)
        if oid is None:
            return None
        field_map = {"name": "name", "company": "company", "bio": "oneLiner", "website": "website"}
        changes = {field_map[key]: value for key, value in updates.items() if key in field_map}
        changes["updatedAt"] = datetime.now(timezone.utc)
        doc = await self.db[USERS].find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return identity_from_document(doc) if doc else None

    # ------------------------------------------------------------------
    # Events and memberships
    # ------------------------------------------------------------------

    async def get_event(self, event_id: str) -> Optional[Event]:
        oid = to_object_id(event_id)
        if oid is None:
            return None
        doc = await self.db[EVENTS].find_one({"_id": oid})
        return event_from_document(doc) if doc else None

    async def insert_membership(self, edge: MembershipEdge) -> MembershipEdge:
        document = {
            "eventId": to_object_id(edge.event_id) or edge.event_id,
            "organizerId": to_object_id(edge.organizer_id) or edge.organizer_id,
            "userId": to_object_id(edge.identity_id),
            "name": edge.name,
            "phoneNumber": edge.phone,
            "source": edge.source.value,
            "joinedAt": edge.joined_at,
            "isJoined": edge.is_joined,
            "isEvent": True,
        }
        try:
            await self.db[EVENT_MEMBERS].insert_one(document)
        except DuplicateKeyError as exc:
            raise ConflictError(
                "Membership already exists",
                details={"event_id": edge.event_id, "identity_id": edge.identity_id},
            ) from exc
        return edge

    async def get_membership(self, event_id: str, identity_id: str) -> Optional[MembershipEdge]:
        doc = await self.db[EVENT_MEMBERS].find_one(self._membership_filter(event_id, identity_id))
        return membership_from_document(doc) if doc else None

    async def delete_membership(self, event_id: str, identity_id: str) -> int:
        result = await self.db[EVENT_MEMBERS].delete_many(self._membership_filter(event_id, identity_id))
        return result.deleted_count

    async def count_memberships(self, event_id: str) -> int:
        return await self.db[EVENT_MEMBERS].count_documents({"eventId": {"$in": self._event_keys(event_id)}})

    async def find_membership_documents(self, collection: str, event_key: EventKey) -> List[Dict[str, Any]]:
        cursor = self.db[collection].find({"eventId": event_key})
        return [doc async for doc in cursor]

    async def find_event_attendees(self, event_key: EventKey) -> List[Any]:
        doc = await self.db[EVENTS].find_one({"_id": event_key}, {"attendees": 1})
        if not doc:
            return []
        return list(doc.get("attendees") or [])

    def _membership_filter(self, event_id: str, identity_id: str) -> Dict[str, Any]:
        user_keys: List[Any] = [identity_id]
        oid = to_object_id(identity_id)
        if oid is not None:
            user_keys.insert(0, oid)
        return {"eventId": {"$in": self._event_keys(event_id)}, "userId": {"$in": user_keys}}

    @staticmethod
    def _event_keys(event_id: str) -> List[EventKey]:
        # Historical rows store the event id either as an ObjectId or as its raw string.
        keys: List[EventKey] = [event_id]
        oid = to_object_id(event_id)
        if oid is not None:
            keys.insert(0, oid)
        return keys
