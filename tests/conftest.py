from datetime import datetime, timezone

import pytest
from bson import ObjectId

from eventnet.core.database import EVENT_MEMBERS, EVENTS, USERS
from eventnet.core.exceptions import ConflictError
from eventnet.members.repository import (
    event_from_document,
    identity_from_document,
    membership_from_document,
    to_object_id,
)
from eventnet.orchestration.hooks import PostCommitHooks


class FakeRepository:
    """In-memory document store mirroring the Mongo collections and unique indexes."""

    def __init__(self):
        self.collections = {USERS: [], EVENTS: [], EVENT_MEMBERS: []}
        self.identity_inserts = 0

    def add_event(self, **fields):
        doc = {"_id": ObjectId(), "name": "Demo Day", "createdBy": ObjectId(), "isVerified": True}
        doc.update(fields)
        self.collections[EVENTS].append(doc)
        return str(doc["_id"])

    def add_user(self, name, phone=None, email=None, company=None, bio=None):
        doc = {
            "_id": ObjectId(),
            "name": name,
            "phoneNumber": phone,
            "email": email or f"{name.split()[0].lower()}@example.com",
            "company": company,
            "oneLiner": bio,
        }
        self.collections[USERS].append(doc)
        return str(doc["_id"])

    def add_document(self, collection, **fields):
        doc = {"_id": ObjectId()}
        doc.update(fields)
        self.collections.setdefault(collection, []).append(doc)
        return doc

    def _user(self, predicate):
        for doc in self.collections[USERS]:
            if predicate(doc):
                return doc
        return None

    async def get_identity(self, identity_id):
        doc = self._user(lambda d: str(d["_id"]) == identity_id)
        return identity_from_document(doc) if doc else None

    async def get_identities(self, identity_ids):
        wanted = set(identity_ids)
        return {
            str(doc["_id"]): identity_from_document(doc)
            for doc in self.collections[USERS]
            if str(doc["_id"]) in wanted
        }

    async def find_identity_by_phone(self, phone):
        doc = self._user(lambda d: d.get("phoneNumber") == phone)
        return identity_from_document(doc) if doc else None

    async def find_identity_by_email(self, email):
        doc = self._user(lambda d: (d.get("email") or "").lower() == email.lower())
        return identity_from_document(doc) if doc else None

    async def find_identity_by_name_company(self, name, company):
        doc = self._user(
            lambda d: (d.get("name") or "").lower() == name.lower()
            and (d.get("company") or "").lower() == company.lower()
        )
        return identity_from_document(doc) if doc else None

    async def phone_exists(self, phone):
        return self._user(lambda d: d.get("phoneNumber") == phone) is not None

    async def insert_identity(self, fields):
        email = fields["email"].lower()
        phone = fields.get("phone")
        if self._user(lambda d: d.get("email") == email or (phone and d.get("phoneNumber") == phone)):
            raise ConflictError("Identity with this phone or email already exists")
        doc = {
            "_id": ObjectId(),
            "name": fields["name"],
            "email": email,
            "phoneNumber": phone,
            "company": fields.get("company") or None,
            "oneLiner": fields.get("bio") or None,
            "website": fields.get("website") or None,
            "createdAt": datetime.now(timezone.utc),
        }
        self.collections[USERS].append(doc)
        self.identity_inserts += 1
        return identity_from_document(doc)

    async def update_identity(self, identity_id, updates):
        doc = self._user(lambda d: str(d["_id"]) == identity_id)
        if doc is None:
            return None
        field_map = {"name": "name", "company": "company", "bio": "oneLiner", "website": "website"}
        for key, value in updates.items():
            doc[field_map[key]] = value
        return identity_from_document(doc)

    async def get_event(self, event_id):
        for doc in self.collections[EVENTS]:
            if str(doc["_id"]) == event_id:
                return event_from_document(doc)
        return None

    def _edges(self, event_id, identity_id):
        return [
            doc
            for doc in self.collections[EVENT_MEMBERS]
            if str(doc.get("eventId")) == event_id and str(doc.get("userId")) == identity_id
        ]

    async def insert_membership(self, edge):
        if self._edges(edge.event_id, edge.identity_id):
            raise ConflictError("Membership already exists")
        self.collections[EVENT_MEMBERS].append(
            {
                "_id": ObjectId(),
                "eventId": to_object_id(edge.event_id) or edge.event_id,
                "organizerId": edge.organizer_id,
                "userId": to_object_id(edge.identity_id),
                "name": edge.name,
                "phoneNumber": edge.phone,
                "source": edge.source.value,
                "joinedAt": edge.joined_at,
                "isJoined": edge.is_joined,
            }
        )
        return edge

    async def get_membership(self, event_id, identity_id):
        docs = self._edges(event_id, identity_id)
        return membership_from_document(docs[0]) if docs else None

    async def delete_membership(self, event_id, identity_id):
        docs = self._edges(event_id, identity_id)
        for doc in docs:
            self.collections[EVENT_MEMBERS].remove(doc)
        return len(docs)

    async def count_memberships(self, event_id):
        return sum(1 for doc in self.collections[EVENT_MEMBERS] if str(doc.get("eventId")) == event_id)

    async def find_membership_documents(self, collection, event_key):
        # Type-sensitive like Mongo: an ObjectId filter does not match a string eventId.
        return [doc for doc in self.collections.get(collection, []) if doc.get("eventId") == event_key]

    async def find_event_attendees(self, event_key):
        for doc in self.collections[EVENTS]:
            if doc["_id"] == event_key:
                return list(doc.get("attendees") or [])
        return []


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def hooks():
    return PostCommitHooks()
