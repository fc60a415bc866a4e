"""Identity resolution: map loosely structured person data onto one canonical identity."""

from __future__ import annotations

import logging
import random
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from eventnet.core.config import settings
from eventnet.core.exceptions import ConflictError, ResourceExhaustedError
from eventnet.members.repository import MemberRepository
from eventnet.models import Identity, PersonInput

logger = logging.getLogger(__name__)

Matcher = Callable[[MemberRepository, PersonInput], Awaitable[Optional[Identity]]]


async def match_by_phone(repository: MemberRepository, person: PersonInput) -> Optional[Identity]:
    if not person.phone:
        return None
    return await repository.find_identity_by_phone(person.phone)


async def match_by_email(repository: MemberRepository, person: PersonInput) -> Optional[Identity]:
    if not person.email:
        return None
    return await repository.find_identity_by_email(person.email)


async def match_by_name_company(repository: MemberRepository, person: PersonInput) -> Optional[Identity]:
    if not person.name or not person.company:
        return None
    return await repository.find_identity_by_name_company(person.name, person.company)


# First match wins.
DEFAULT_MATCHERS: Sequence[Tuple[str, Matcher]] = (
    ("phone", match_by_phone),
    ("email", match_by_email),
    ("name_company", match_by_name_company),
)


class IdentityResolver:
    """Find or create exactly one identity for a person input."""

    def __init__(
        self,
        repository: MemberRepository,
        *,
        matchers: Sequence[Tuple[str, Matcher]] = DEFAULT_MATCHERS,
        phone_attempts: int | None = None,
        email_domain: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.repository = repository
        self.matchers = tuple(matchers)
        self.phone_attempts = phone_attempts or settings.PHONE_GENERATION_ATTEMPTS
        self.email_domain = email_domain or settings.PLACEHOLDER_EMAIL_DOMAIN
        self._rng = rng or random.SystemRandom()

    async def resolve(self, person: PersonInput) -> Tuple[Identity, bool]:
        """Return ``(identity, is_new)``; existing identities are never modified here."""

        matched = await self.match(person)
        if matched is not None:
            return matched, False

        phone = person.phone or await self.generate_unique_phone()
        email = person.email or self.placeholder_email(phone)
        try:
            identity = await self.repository.insert_identity(
                {
                    "name": person.name,
                    "email": email,
                    "phone": phone,
                    "company": person.company,
                    "bio": person.bio,
                    "website": person.website,
                }
            )
        except ConflictError:
            # A concurrent intake created the same person between our lookup and insert.
            matched = await self.match(person)
            if matched is None:
                raise
            logger.info("Identity insert collided; reusing %s", matched.id)
            return matched, False

        logger.info(
            "Created identity %s",
            identity.id,
            extra={"generated_phone": person.phone is None, "generated_email": person.email is None},
        )
        return identity, True

    async def match(self, person: PersonInput) -> Optional[Identity]:
        for label, matcher in self.matchers:
            identity = await matcher(self.repository, person)
            if identity is not None:
                logger.debug("Resolved identity %s by %s", identity.id, label)
                return identity
        return None

    async def generate_unique_phone(self) -> str:
        """Synthesize a locally unique 10-digit number for people imported without one."""

        for _ in range(self.phone_attempts):
            candidate = f"{self._rng.choice('987')}{self._rng.randint(100000000, 999999999)}"
            if not await self.repository.phone_exists(candidate):
                return candidate
        raise ResourceExhaustedError(
            f"Failed to generate unique phone number after {self.phone_attempts} attempts",
            details={"attempts": self.phone_attempts},
        )

    def placeholder_email(self, phone: str) -> str:
        return f"user{phone}@{self.email_domain}".lower()
