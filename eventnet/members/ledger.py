"""Membership ledger: at most one edge per identity per event."""

from __future__ import annotations

import logging
from typing import Union

from eventnet.core.exceptions import ConflictError
from eventnet.members.repository import MemberRepository
from eventnet.models import AlreadyMember, Identity, MembershipEdge, MembershipSource
from eventnet.orchestration.hooks import MEMBER_ADDED, MEMBER_REMOVED, PostCommitHooks, post_commit_hooks
from eventnet.utils.monitoring import observe_member_addition

logger = logging.getLogger(__name__)


class MembershipLedger:
    """Records identity participation in events.

    Duplicate adds are resolved by the store's unique (event, identity) constraint rather
    than a prior existence check, so concurrent joins of the same pair end with one edge and
    an :class:`AlreadyMember` for the loser.
    """

    def __init__(self, repository: MemberRepository, hooks: PostCommitHooks | None = None) -> None:
        self.repository = repository
        self.hooks = hooks or post_commit_hooks

    async def add_member(
        self,
        event_id: str,
        organizer_id: str,
        identity: Identity,
        source: MembershipSource,
    ) -> Union[MembershipEdge, AlreadyMember]:
        edge = MembershipEdge(
            event_id=event_id,
            organizer_id=organizer_id,
            identity_id=identity.id,
            name=identity.name,
            phone=identity.phone,
            source=source,
        )
        try:
            await self.repository.insert_membership(edge)
        except ConflictError:
            logger.info("Identity %s already a member of event %s", identity.id, event_id)
            observe_member_addition(source.value, "already_member")
            return AlreadyMember(event_id=event_id, identity_id=identity.id)

        observe_member_addition(source.value, "added")
        logger.info(
            "Added member to event",
            extra={"event_id": event_id, "identity_id": identity.id, "source": source.value},
        )
        self.hooks.publish(MEMBER_ADDED, {"event_id": event_id, "identity": identity.model_dump()})
        return edge

    async def remove_member(self, event_id: str, identity_id: str) -> None:
        """Delete the edge if present; removing an absent edge is not an error."""

        deleted = await self.repository.delete_membership(event_id, identity_id)
        logger.info(
            "Removed member from event",
            extra={"event_id": event_id, "identity_id": identity_id, "deleted": deleted},
        )
        self.hooks.publish(MEMBER_REMOVED, {"event_id": event_id, "identity_id": identity_id})

    async def count_members(self, event_id: str) -> int:
        return await self.repository.count_memberships(event_id)

    async def is_member(self, event_id: str, identity_id: str) -> bool:
        return await self.repository.get_membership(event_id, identity_id) is not None
