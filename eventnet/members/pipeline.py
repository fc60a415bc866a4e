"""
Member Intake Pipeline

Entry point for every way a person becomes an event member: organizer manual entry,
self-join, and bulk spreadsheet or JSON import. Each path validates the event, resolves
the person to one identity, and records the membership edge. Embedding refresh happens
afterwards through post-commit hooks and never affects the outcome reported here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from eventnet.core.config import settings
from eventnet.core.exceptions import EventNotApprovedError, NotFoundError, ValidationError
from eventnet.members.identity import IdentityResolver
from eventnet.members.ledger import MembershipLedger
from eventnet.members.repository import MemberRepository
from eventnet.models import (
    AlreadyMember,
    BulkImportSummary,
    Event,
    Identity,
    MemberAddResult,
    MembershipSource,
    PersonInput,
)
from eventnet.models.identity import BIO_FIELDS, COMPANY_FIELDS, NAME_FIELDS, PHONE_FIELDS, first_value
from eventnet.orchestration.hooks import MEMBER_ADDED, PROFILE_UPDATED, PostCommitHooks, post_commit_hooks

logger = logging.getLogger(__name__)

PersonLike = Union[PersonInput, Mapping[str, Any]]

MANUAL_REQUIRED_FIELDS = {
    "name": NAME_FIELDS,
    "phone": PHONE_FIELDS,
    "company": COMPANY_FIELDS,
    "bio": BIO_FIELDS,
}
PROFILE_FIELDS = ("name", "company", "bio", "website")


def missing_manual_fields(person: PersonLike) -> List[str]:
    if isinstance(person, PersonInput):
        return [field for field in MANUAL_REQUIRED_FIELDS if not getattr(person, field)]
    return [field for field, aliases in MANUAL_REQUIRED_FIELDS.items() if not first_value(person, aliases)]


def to_person_input(person: PersonLike) -> PersonInput:
    if isinstance(person, PersonInput):
        return person
    return PersonInput.from_raw(person)


class MemberPipeline:
    """Coordinates identity resolution and the membership ledger for one store."""

    def __init__(
        self,
        repository: MemberRepository,
        *,
        resolver: IdentityResolver | None = None,
        ledger: MembershipLedger | None = None,
        hooks: PostCommitHooks | None = None,
        import_concurrency: int | None = None,
    ) -> None:
        self.repository = repository
        self.hooks = hooks or post_commit_hooks
        self.resolver = resolver or IdentityResolver(repository)
        self.ledger = ledger or MembershipLedger(repository, hooks=self.hooks)
        self.import_concurrency = import_concurrency or settings.IMPORT_CONCURRENCY

    async def add_member(
        self,
        event_id: str,
        person: PersonLike,
        source: MembershipSource = MembershipSource.MANUAL,
        organizer_id: Optional[str] = None,
    ) -> MemberAddResult:
        """Add one person to an event.

        Raises ``NotFoundError``/``EventNotApprovedError`` for an unusable event,
        ``ValidationError`` for unusable person data, and propagates identity and ledger
        failures. An existing membership is a successful no-op.
        """

        event = await self.require_event(event_id)
        return await self._add(event, person, source, organizer_id)

    async def join_event(self, event_id: str, identity_id: str) -> MemberAddResult:
        event = await self.require_event(event_id)
        identity = await self.repository.get_identity(identity_id)
        if identity is None:
            raise NotFoundError(f"Identity {identity_id} not found", details={"identity_id": identity_id})
        organizer_id = event.created_by or identity.id
        return await self._record(event, identity, False, MembershipSource.SELF_JOIN, organizer_id)

    async def remove_member(self, event_id: str, identity_id: str) -> None:
        await self.ledger.remove_member(event_id, identity_id)

    async def update_member_profile(
        self,
        event_id: str,
        identity_id: str,
        updates: Mapping[str, Any],
    ) -> Identity:
        """Apply non-empty profile updates; the embedding is refreshed only for members of ``event_id``."""

        changes = {}
        for field in PROFILE_FIELDS:
            value = updates.get(field)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                changes[field] = text

        if changes:
            identity = await self.repository.update_identity(identity_id, changes)
        else:
            identity = await self.repository.get_identity(identity_id)
        if identity is None:
            raise NotFoundError(f"Identity {identity_id} not found", details={"identity_id": identity_id})

        logger.info("Updated profile", extra={"identity_id": identity_id, "fields": sorted(changes)})
        if await self.ledger.is_member(event_id, identity.id):
            self.hooks.publish(PROFILE_UPDATED, {"event_id": event_id, "identity": identity.model_dump()})
        else:
            logger.info("Identity %s is not a member of event %s; profile not re-indexed", identity.id, event_id)
        return identity

    async def import_members(
        self,
        event_id: str,
        organizer_id: Optional[str],
        rows: Iterable[PersonLike],
        source: MembershipSource = MembershipSource.SPREADSHEET,
    ) -> BulkImportSummary:
        """Import many people; a bad row is recorded as failed and the batch continues."""

        event = await self.require_event(event_id)
        rows = list(rows)

        if self.import_concurrency <= 1:
            results = [await self._import_row(event, row, source, organizer_id) for row in rows]
        else:
            semaphore = asyncio.Semaphore(self.import_concurrency)

            async def bounded(row: PersonLike) -> MemberAddResult:
                async with semaphore:
                    return await self._import_row(event, row, source, organizer_id)

            results = list(await asyncio.gather(*(bounded(row) for row in rows)))

        summary = BulkImportSummary(total_processed=len(results), results=results)
        for result in results:
            if not result.success:
                summary.failed += 1
            elif result.is_existing_member:
                summary.skipped += 1
            else:
                summary.added += 1

        logger.info(
            "Bulk import finished",
            extra={
                "event_id": event_id,
                "processed": summary.total_processed,
                "added": summary.added,
                "skipped": summary.skipped,
                "failed": summary.failed,
            },
        )
        return summary

    async def require_event(self, event_id: str) -> Event:
        event = await self.repository.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found", details={"event_id": event_id})
        if settings.REQUIRE_VERIFIED_EVENTS and not event.is_verified:
            raise EventNotApprovedError(
                "Event is not approved yet. Members cannot be added.",
                details={"event_id": event_id},
            )
        return event

    async def _import_row(
        self,
        event: Event,
        row: PersonLike,
        source: MembershipSource,
        organizer_id: Optional[str],
    ) -> MemberAddResult:
        try:
            return await self._add(event, row, source, organizer_id)
        except Exception as exc:
            logger.warning("Import row failed for event %s: %s", event.id, exc)
            return MemberAddResult(success=False, message="Failed to add member", error=str(exc))

    async def _add(
        self,
        event: Event,
        person: PersonLike,
        source: MembershipSource,
        organizer_id: Optional[str],
    ) -> MemberAddResult:
        if source is MembershipSource.MANUAL:
            missing = missing_manual_fields(person)
            if missing:
                raise ValidationError(
                    f"Missing required fields: {', '.join(missing)}",
                    details={"missing": missing},
                )

        person_input = to_person_input(person)
        identity, is_new = await self.resolver.resolve(person_input)
        organizer = organizer_id or event.created_by or ""
        return await self._record(event, identity, is_new, source, organizer)

    async def _record(
        self,
        event: Event,
        identity: Identity,
        is_new: bool,
        source: MembershipSource,
        organizer_id: str,
    ) -> MemberAddResult:
        outcome = await self.ledger.add_member(event.id, organizer_id, identity, source)
        if isinstance(outcome, AlreadyMember):
            return MemberAddResult(
                success=True,
                identity_id=identity.id,
                is_new_identity=is_new,
                is_existing_member=True,
                message="User is already a member of this event",
            )
        return MemberAddResult(
            success=True,
            identity_id=identity.id,
            is_new_identity=is_new,
            embedding_scheduled=self.hooks.has_subscribers(MEMBER_ADDED),
            message="Member added successfully",
        )
