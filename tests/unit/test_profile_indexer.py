import asyncio
from datetime import datetime

import pytest

from eventnet.knowledge.ingestion.chunkers import TextChunker
from eventnet.knowledge.vector.index import EventVectorIndex
from eventnet.knowledge.vector.profiles import ProfileIndexer, build_event_text, build_profile_text
from eventnet.members.ledger import MembershipLedger
from eventnet.models import EmbeddingCategory, Event, Identity, MembershipSource
from eventnet.orchestration.hooks import MEMBER_ADDED, MEMBER_REMOVED


class OfflineManager:
    index = None


class StubEmbeddingGenerator:
    def __init__(self):
        self.texts = []

    async def embed(self, text):
        self.texts.append(text)
        return [1.0, float(len(text) % 5), 0.5]


class SlowEmbeddingGenerator:
    async def embed(self, text):
        await asyncio.sleep(0.01)
        return [1.0, 0.0, 0.5]


class EmptyEmbeddingGenerator:
    async def embed(self, text):
        return []


class ExplodingEmbeddingGenerator:
    async def embed(self, text):
        raise RuntimeError("provider outage")


def make_identity(**overrides):
    fields = {
        "id": "64b7f0c2a1b2c3d4e5f60718",
        "name": "Priya Nair",
        "email": "priya@example.com",
        "phone": "9876543210",
        "company": "Nair Textiles",
        "bio": "Founder \U0001F680 of a textile export house. Call me on +91 98765 43210 or 9876543210!",
    }
    fields.update(overrides)
    return Identity(**fields)


def test_profile_text_excludes_phone_and_pictographs():
    text = build_profile_text(make_identity())

    assert text.startswith("Name: Priya Nair . Company: Nair Textiles . Description: Founder of a textile")
    assert "9876543210" not in text.replace(" ", "")
    assert "98765" not in text
    assert "\U0001F680" not in text
    assert "  " not in text


def test_profile_text_omits_empty_fields():
    text = build_profile_text(make_identity(company=None, bio=""))

    assert text == "Name: Priya Nair"


def test_event_text_joins_available_fields():
    event = Event(id="e1", name="Agri Expo", headline="Farm to fork", tags=["food", "agritech"], location="Pune")

    assert build_event_text(event) == "Agri Expo. Farm to fork. food, agritech. Pune"


@pytest.mark.asyncio
async def test_index_member_profile_replaces_prior_record():
    embedder = StubEmbeddingGenerator()
    index = EventVectorIndex(manager=OfflineManager())
    indexer = ProfileIndexer(embedder=embedder, index=index)
    identity = make_identity()

    assert await indexer.index_member_profile("event-1", identity) is True
    assert await indexer.index_member_profile("event-1", make_identity(bio="Now exporting silk")) is True

    record = index.get_fallback_record("event-1", EmbeddingCategory.MEMBER_PROFILE, identity.id)
    assert record.text.endswith("Description: Now exporting silk")
    assert record.metadata["phoneNumber"] == "9876543210"
    assert len(index._fallback_store) == 1
    assert all("9876543210" not in text for text in embedder.texts)


@pytest.mark.asyncio
@pytest.mark.parametrize("embedder", [EmptyEmbeddingGenerator(), ExplodingEmbeddingGenerator()])
async def test_index_failures_are_reported_not_raised(embedder):
    index = EventVectorIndex(manager=OfflineManager())
    indexer = ProfileIndexer(embedder=embedder, index=index)

    assert await indexer.index_member_profile("event-1", make_identity()) is False
    assert index._fallback_store == {}


@pytest.mark.asyncio
async def test_hooks_drive_index_and_deindex(hooks):
    index = EventVectorIndex(manager=OfflineManager())
    indexer = ProfileIndexer(embedder=StubEmbeddingGenerator(), index=index)
    indexer.register(hooks)
    identity = make_identity()

    hooks.publish(MEMBER_ADDED, {"event_id": "event-1", "identity": identity.model_dump()})
    await hooks.drain()
    assert index.get_fallback_record("event-1", EmbeddingCategory.MEMBER_PROFILE, identity.id) is not None

    hooks.publish(MEMBER_REMOVED, {"event_id": "event-1", "identity_id": identity.id})
    await hooks.drain()
    assert index.get_fallback_record("event-1", EmbeddingCategory.MEMBER_PROFILE, identity.id) is None


@pytest.mark.asyncio
async def test_remove_right_after_add_leaves_no_profile_record(repository, hooks):
    event_id = repository.add_event()
    identity_id = repository.add_user("Asha Rao", phone="9000000001")
    identity = Identity(id=identity_id, name="Asha Rao", email="asha@example.com", phone="9000000001")
    index = EventVectorIndex(manager=OfflineManager())
    ProfileIndexer(embedder=SlowEmbeddingGenerator(), index=index).register(hooks)
    ledger = MembershipLedger(repository, hooks=hooks)

    await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)
    await ledger.remove_member(event_id, identity.id)
    await hooks.drain()

    assert await ledger.is_member(event_id, identity.id) is False
    assert index.get_fallback_record(event_id, EmbeddingCategory.MEMBER_PROFILE, identity.id) is None


@pytest.mark.asyncio
async def test_readd_after_remove_indexes_profile_again(repository, hooks):
    event_id = repository.add_event()
    identity_id = repository.add_user("Asha Rao", phone="9000000001")
    identity = Identity(id=identity_id, name="Asha Rao", email="asha@example.com", phone="9000000001")
    index = EventVectorIndex(manager=OfflineManager())
    indexer = ProfileIndexer(embedder=SlowEmbeddingGenerator(), index=index)
    indexer.register(hooks)
    ledger = MembershipLedger(repository, hooks=hooks)

    await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)
    await ledger.remove_member(event_id, identity.id)
    await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)
    await hooks.drain()

    assert index.get_fallback_record(event_id, EmbeddingCategory.MEMBER_PROFILE, identity.id) is not None
    assert indexer._subject_locks == {}


@pytest.mark.asyncio
async def test_event_knowledge_indexing_and_purge():
    index = EventVectorIndex(manager=OfflineManager())
    indexer = ProfileIndexer(embedder=StubEmbeddingGenerator(), index=index, chunker=TextChunker())
    event = Event(id="event-9", name="Demo Day", description="Pitches from ten startups.", date_time=datetime(2025, 5, 1))
    document = " ".join(f"Session {n} covers topic number {n} in depth." for n in range(60))

    assert await indexer.index_event_metadata(event) is True
    stored = await indexer.index_event_document("event-9", "agenda", document)

    assert stored > 1
    assert index.get_fallback_record("event-9", EmbeddingCategory.EVENT_DOCUMENT, "agenda::0") is not None
    assert index.get_fallback_record("event-9", EmbeddingCategory.EVENT_METADATA, "event-9") is not None

    assert await indexer.purge_event("event-9") is True
    assert index._fallback_store == {}


@pytest.mark.asyncio
async def test_vector_query_is_scoped_to_event_and_category():
    index = EventVectorIndex(manager=OfflineManager())
    await index.upsert("event-1", EmbeddingCategory.MEMBER_PROFILE, "a", "Name: A", [1.0, 0.0])
    await index.upsert("event-1", EmbeddingCategory.MEMBER_PROFILE, "b", "Name: B", [0.0, 1.0])
    await index.upsert("event-1", EmbeddingCategory.EVENT_METADATA, "event-1", "Demo Day", [1.0, 0.0])
    await index.upsert("event-2", EmbeddingCategory.MEMBER_PROFILE, "c", "Name: C", [1.0, 0.0])

    matches = await index.query([1.0, 0.1], "event-1", EmbeddingCategory.MEMBER_PROFILE, limit=10, min_similarity=0.45)

    assert [match.subject_key for match in matches] == ["a"]


def test_chunker_overlaps_neighbouring_chunks():
    text = "Alpha beta gamma. Delta epsilon zeta. Eta theta iota. Kappa lambda mu."

    chunks = TextChunker().chunk(text, chunk_size=40, overlap=10)

    assert len(chunks) > 1
    assert chunks[1].startswith(chunks[0].split(". ")[-1].rstrip("."))
