"""Exhibitor spreadsheet parsing (.xlsx and .csv) into person rows for bulk import."""

from __future__ import annotations

import csv
import io
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from openpyxl import load_workbook

from eventnet.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Column aliases after header normalization (lower case, alphanumerics only), priority order.
FOUNDER_COLUMNS = ("foundername",)
COMPANY_COLUMNS = ("name", "exhibitorname", "organisation", "organizationname")
ABOUT_COLUMNS = ("about", "bio", "description")
DESIGNATION_COLUMNS = ("founderdesignation", "designation", "role")
PHONE_COLUMNS = ("phonenumber", "phone", "mobile")
EMAIL_COLUMNS = ("email",)
WEBSITE_COLUMNS = ("website",)
LINKEDIN_COLUMNS = ("linkedin", "founderlinkedin")
PRODUCT_NAME_COLUMNS = ("productname",)
PRODUCT_ABOUT_COLUMNS = ("productabout",)

_HEADER_NOISE = re.compile(r"[^a-z0-9]")

Source = Union[str, Path, bytes]


def normalize_header(header: Any) -> str:
    return _HEADER_NOISE.sub("", str(header or "").lower())


def _pick(row: Mapping[str, str], columns: Sequence[str]) -> str:
    for column in columns:
        value = row.get(column)
        if value:
            return value
    return ""


def compose_bio(designation: str, about: str, product_about: str, product_name: str) -> str:
    parts: List[str] = []
    if designation:
        parts.append(designation)
    if about:
        parts.append(about)
    if product_about and product_about != about:
        parts.append(product_about)
    if product_name and product_name not in " ".join(parts):
        parts.append(f"Product: {product_name}")
    return "\n".join(parts).strip()


def map_exhibitor_row(raw: Mapping[Any, Any]) -> Optional[Dict[str, str]]:
    """Map one exhibitor row to person fields; ``None`` when no name can be derived.

    The ``name`` column of an exhibitor sheet holds the company; the person is in
    ``founderName`` and falls back to the company when absent.
    """

    row = {
        normalize_header(key): str(value).strip()
        for key, value in raw.items()
        if key is not None and value is not None and str(value).strip()
    }
    founder = _pick(row, FOUNDER_COLUMNS)
    company = _pick(row, COMPANY_COLUMNS)
    name = founder or company
    if not name:
        return None

    return {
        "name": name,
        "company": company,
        "bio": compose_bio(
            _pick(row, DESIGNATION_COLUMNS),
            _pick(row, ABOUT_COLUMNS),
            _pick(row, PRODUCT_ABOUT_COLUMNS),
            _pick(row, PRODUCT_NAME_COLUMNS),
        ),
        "phoneNumber": _pick(row, PHONE_COLUMNS),
        "email": _pick(row, EMAIL_COLUMNS),
        "website": _pick(row, WEBSITE_COLUMNS),
        "linkedin": _pick(row, LINKEDIN_COLUMNS),
    }


def map_rows(rows: Iterable[Mapping[Any, Any]]) -> List[Dict[str, str]]:
    members: List[Dict[str, str]] = []
    skipped = 0
    for raw in rows:
        member = map_exhibitor_row(raw)
        if member is None:
            skipped += 1
            continue
        members.append(member)
    if skipped:
        logger.info("Skipped %s spreadsheet rows without a founder or company name", skipped)
    return members


def read_xlsx_rows(source: Source) -> List[Dict[Any, Any]]:
    """Rows of the first worksheet as dicts keyed by the header row."""

    handle = io.BytesIO(source) if isinstance(source, bytes) else str(source)
    workbook = load_workbook(handle, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        values = sheet.iter_rows(values_only=True)
        header = next(values, None)
        if header is None:
            return []
        return [dict(zip(header, row)) for row in values if any(cell is not None for cell in row)]
    finally:
        workbook.close()


def read_csv_rows(source: Source) -> List[Dict[str, Any]]:
    if isinstance(source, bytes):
        text = source.decode("utf-8-sig")
    else:
        text = Path(source).read_text(encoding="utf-8-sig")
    return list(csv.DictReader(io.StringIO(text)))


def parse_member_spreadsheet(source: Source, *, filename: Optional[str] = None) -> List[Dict[str, str]]:
    """Parse an exhibitor sheet from a path or raw bytes (``filename`` picks the format for bytes)."""

    name = filename or (str(source) if not isinstance(source, bytes) else "")
    suffix = Path(name).suffix.lower()
    if suffix == ".xlsx":
        rows = read_xlsx_rows(source)
    elif suffix == ".csv":
        rows = read_csv_rows(source)
    else:
        raise ValidationError(
            "Unsupported spreadsheet format; expected .xlsx or .csv",
            details={"filename": name},
        )

    members = map_rows(rows)
    logger.info("Mapped %s of %s spreadsheet rows to members", len(members), len(rows))
    if not members:
        raise ValidationError('No valid members found in spreadsheet. Ensure there is a "Name" column.')
    return members
