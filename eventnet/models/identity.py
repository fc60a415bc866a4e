"""Identity data model definitions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from eventnet.core.exceptions import ValidationError
from eventnet.utils.text import normalize_email, normalize_phone


class Identity(BaseModel):
    """Canonical record for one real person."""

    id: str = Field(..., description="Unique identity identifier")
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    role: str = "member"
    created_at: Optional[datetime] = None


# Alias columns accepted from join forms, JSON uploads and spreadsheets, in priority order.
NAME_FIELDS: Sequence[str] = ("founderName", "name")
COMPANY_FIELDS: Sequence[str] = ("organisation", "company")
BIO_FIELDS: Sequence[str] = ("bio", "description", "about", "founderDesignation")
PHONE_FIELDS: Sequence[str] = ("phoneNumber", "phone", "mobile")


def first_value(raw: Mapping[str, Any], fields: Sequence[str]) -> str:
    for field in fields:
        value = raw.get(field)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


class PersonInput(BaseModel):
    """Loosely structured person data offered for identity resolution."""

    name: str = Field(..., min_length=1)
    company: str = ""
    bio: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None

    @field_validator("phone", mode="before")
    @classmethod
    def normalize_phone_field(cls, value: Optional[str]) -> Optional[str]:
        return normalize_phone(value)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email_field(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PersonInput":
        """Normalize a flexible mapping (form, JSON row, spreadsheet row) into a person input."""

        name = first_value(raw, NAME_FIELDS)
        if not name:
            raise ValidationError("Invalid member data: name is required", details={"fields": sorted(raw.keys())})

        return cls(
            name=name,
            company=first_value(raw, COMPANY_FIELDS),
            bio=first_value(raw, BIO_FIELDS),
            phone=first_value(raw, PHONE_FIELDS),
            email=first_value(raw, ("email",)),
            website=first_value(raw, ("website",)) or None,
            linkedin=first_value(raw, ("linkedin",)) or None,
        )
