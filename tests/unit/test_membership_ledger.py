import asyncio

import pytest

from eventnet.members.ledger import MembershipLedger
from eventnet.models import AlreadyMember, Identity, MembershipEdge, MembershipSource
from eventnet.orchestration.hooks import MEMBER_ADDED, MEMBER_REMOVED


def make_identity(repository, name="Asha", phone="9876543210"):
    identity_id = repository.add_user(name, phone=phone)
    return Identity(id=identity_id, name=name, email=f"{name.lower()}@example.com", phone=phone)


@pytest.mark.asyncio
async def test_second_add_reports_already_member(repository, hooks):
    event_id = repository.add_event()
    identity = make_identity(repository)
    ledger = MembershipLedger(repository, hooks=hooks)

    first = await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)
    second = await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)

    assert isinstance(first, MembershipEdge)
    assert isinstance(second, AlreadyMember)
    assert await ledger.count_members(event_id) == 1


@pytest.mark.asyncio
async def test_remove_is_idempotent_and_readd_matches_fresh_add(repository, hooks):
    event_id = repository.add_event()
    identity = make_identity(repository)
    ledger = MembershipLedger(repository, hooks=hooks)

    fresh = await ledger.add_member(event_id, "organizer", identity, MembershipSource.SELF_JOIN)
    await ledger.remove_member(event_id, identity.id)
    await ledger.remove_member(event_id, identity.id)
    assert await ledger.is_member(event_id, identity.id) is False

    readded = await ledger.add_member(event_id, "organizer", identity, MembershipSource.SELF_JOIN)

    assert isinstance(readded, MembershipEdge)
    assert readded.model_dump(exclude={"joined_at"}) == fresh.model_dump(exclude={"joined_at"})
    assert await ledger.count_members(event_id) == 1


@pytest.mark.asyncio
async def test_successful_add_publishes_hook_without_waiting(repository, hooks):
    event_id = repository.add_event()
    identity = make_identity(repository)
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_refresh(payload):
        started.set()
        await release.wait()

    hooks.subscribe(MEMBER_ADDED, slow_refresh)
    ledger = MembershipLedger(repository, hooks=hooks)

    result = await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)

    assert isinstance(result, MembershipEdge)
    assert hooks.pending == 1
    release.set()
    await hooks.drain()
    assert started.is_set()


@pytest.mark.asyncio
async def test_failing_hook_does_not_roll_back_membership(repository, hooks):
    event_id = repository.add_event()
    identity = make_identity(repository)

    async def broken(payload):
        raise RuntimeError("embedding backend down")

    hooks.subscribe(MEMBER_ADDED, broken)
    ledger = MembershipLedger(repository, hooks=hooks)

    await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)
    await hooks.drain()

    assert await ledger.is_member(event_id, identity.id) is True


@pytest.mark.asyncio
async def test_already_member_does_not_publish(repository, hooks):
    event_id = repository.add_event()
    identity = make_identity(repository)
    added = []
    removed = []

    async def on_added(payload):
        added.append(payload)

    async def on_removed(payload):
        removed.append(payload)

    hooks.subscribe(MEMBER_ADDED, on_added)
    hooks.subscribe(MEMBER_REMOVED, on_removed)
    ledger = MembershipLedger(repository, hooks=hooks)

    await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)
    await ledger.add_member(event_id, "organizer", identity, MembershipSource.MANUAL)
    await ledger.remove_member(event_id, identity.id)
    await hooks.drain()

    assert len(added) == 1
    assert added[0]["identity"]["id"] == identity.id
    assert removed == [{"event_id": event_id, "identity_id": identity.id}]
