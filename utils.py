"""
utils.py
Validation, dates, exports.
"""

from __future__ import annotations

import re
from datetime import date

import pandas as pd

import membership
from models import FEE_STATUSES, ClientRecord

PHONE_RE = re.compile(r"\d{10}")
MAX_NAME_LENGTH = 100

# Incoming (camelCase) field -> clients column
DATE_FIELDS = {
    "joinDate": "join_date",
    "expiryDate": "expiry_date",
    "lastVisit": "last_visit",
}


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def _to_date(value) -> date:
    if isinstance(value, date):
        return value
    return parse_iso(str(value).strip())


def is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def parse_positive_int(value) -> int | None:
    """Accepts ints and digit strings (form fields); None when not a positive integer."""
    if is_positive_int(value):
        return value
    if isinstance(value, str) and value.strip().isdigit() and int(value) > 0:
        return int(value)
    return None


def clean_client_fields(fields: dict, partial: bool = False) -> tuple[dict, list[str]]:
    """
    Validate raw client input (camelCase keys, as sent by the API/dashboard).
    Returns (clean values keyed by column name, errors). Keys that are missing,
    None or blank count as not supplied; with partial=False name and phone
    are required.
    """
    fields = {k: v for k, v in fields.items() if v is not None and not (isinstance(v, str) and not v.strip())}
    clean: dict = {}
    errors: list[str] = []

    if "name" in fields:
        name = str(fields["name"]).strip()
        if len(name) > MAX_NAME_LENGTH:
            errors.append(f"Name must be at most {MAX_NAME_LENGTH} characters.")
        else:
            clean["name"] = name
    elif not partial:
        errors.append("Name is required.")

    if "phone" in fields:
        phone = str(fields["phone"]).strip()
        if not PHONE_RE.fullmatch(phone):
            errors.append("Phone must be exactly 10 digits.")
        else:
            clean["phone"] = phone
    elif not partial:
        errors.append("Phone is required.")

    for key, column in DATE_FIELDS.items():
        if key in fields:
            try:
                clean[column] = _to_date(fields[key])
            except ValueError:
                errors.append(f"{key} must be a valid ISO date (YYYY-MM-DD).")

    if "feeStatus" in fields:
        if fields["feeStatus"] in FEE_STATUSES:
            clean["fee_status"] = fields["feeStatus"]
        else:
            errors.append(f"feeStatus must be one of {', '.join(FEE_STATUSES)}.")

    if "duration" in fields:
        months = parse_positive_int(fields["duration"])
        if months is None:
            errors.append("Duration must be a positive number of months.")
        else:
            clean["duration"] = months

    join, expiry = clean.get("join_date"), clean.get("expiry_date")
    if join and expiry and expiry <= join:
        errors.append("Expiry date must be after join date.")

    return clean, errors


def clients_to_csv_bytes(records: list[ClientRecord], today: date) -> bytes:
    rows = []
    for r in records:
        row = r.to_dict()
        row["status"] = membership.derive_status(r, today)
        rows.append(row)
    df = pd.DataFrame(rows)
    return df.to_csv(index=False).encode("utf-8")
