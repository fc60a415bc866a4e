import asyncio
import random

import pytest

from eventnet.core.exceptions import ResourceExhaustedError, ValidationError
from eventnet.members.identity import IdentityResolver
from eventnet.models import PersonInput


@pytest.mark.asyncio
async def test_same_phone_resolves_to_same_identity(repository):
    resolver = IdentityResolver(repository)

    first, first_new = await resolver.resolve(PersonInput(name="Asha Rao", phone="98765 43210"))
    second, second_new = await resolver.resolve(
        PersonInput.from_raw({"founderName": "A. Rao", "mobile": "98765-43210"})
    )

    assert first_new is True
    assert second_new is False
    assert first.id == second.id
    assert repository.identity_inserts == 1


@pytest.mark.asyncio
async def test_resolution_order_phone_then_email_then_name_company(repository):
    by_phone = repository.add_user("Phone Match", phone="9000000001", email="phone@example.com")
    by_email = repository.add_user("Email Match", phone="9000000002", email="email@example.com")
    by_name = repository.add_user("Nina Shah", phone="9000000003", email="nina@example.com", company="Acme Oils")
    resolver = IdentityResolver(repository)

    identity, _ = await resolver.resolve(
        PersonInput(name="Nina Shah", company="Acme Oils", phone="9000000001", email="EMAIL@example.com")
    )
    assert identity.id == by_phone

    identity, _ = await resolver.resolve(PersonInput(name="Nina Shah", company="Acme Oils", email="Email@Example.com"))
    assert identity.id == by_email

    identity, is_new = await resolver.resolve(PersonInput(name="nina shah", company="ACME OILS"))
    assert identity.id == by_name
    assert is_new is False


@pytest.mark.asyncio
async def test_matching_never_rewrites_existing_contact_fields(repository):
    existing = repository.add_user("Ravi", phone="9111111111", email="ravi@example.com")
    resolver = IdentityResolver(repository)

    identity, _ = await resolver.resolve(PersonInput(name="Ravi", phone="9111111111", email="other@example.com"))

    assert identity.id == existing
    assert identity.email == "ravi@example.com"


@pytest.mark.asyncio
async def test_missing_contact_fields_are_synthesized(repository):
    resolver = IdentityResolver(repository, rng=random.Random(7))

    identity, is_new = await resolver.resolve(PersonInput(name="No Contact", company="Stealth"))

    assert is_new is True
    assert len(identity.phone) == 10
    assert identity.phone[0] in "987"
    assert identity.email == f"user{identity.phone}@placeholder.invalid"


@pytest.mark.asyncio
async def test_phone_generation_gives_up_after_configured_attempts(repository):
    class AlwaysTaken:
        def __getattr__(self, name):
            return getattr(repository, name)

        async def phone_exists(self, phone):
            return True

    resolver = IdentityResolver(AlwaysTaken(), phone_attempts=5)

    with pytest.raises(ResourceExhaustedError):
        await resolver.resolve(PersonInput(name="Unlucky"))


@pytest.mark.asyncio
async def test_concurrent_intake_of_same_person_creates_one_identity(repository):
    resolver = IdentityResolver(repository)
    person = PersonInput(name="Twin", phone="9222222222")

    results = await asyncio.gather(resolver.resolve(person), resolver.resolve(person))

    assert {identity.id for identity, _ in results} == {results[0][0].id}
    assert repository.identity_inserts == 1


def test_person_input_requires_a_name():
    with pytest.raises(ValidationError):
        PersonInput.from_raw({"company": "", "phone": "9333333333"})


def test_person_input_alias_priority():
    person = PersonInput.from_raw(
        {
            "founderName": "  Meera ",
            "name": "Company Pvt Ltd",
            "organisation": "Meera Foods",
            "description": "Cold-pressed oils",
            "founderDesignation": "CEO",
            "phoneNumber": "+91 99999 00000",
            "email": " Meera@Example.COM ",
        }
    )

    assert person.name == "Meera"
    assert person.company == "Meera Foods"
    assert person.bio == "Cold-pressed oils"
    assert person.phone == "919999900000"
    assert person.email == "meera@example.com"
