"""
membership.py
Membership status and renewal date math. Pure functions: no I/O, and "today"
is always passed in by the caller.
"""

from __future__ import annotations

import calendar
from datetime import MAXYEAR, MINYEAR, date

from errors import ValidationError
from models import FEE_PAID, FEE_UNPAID, STATUS_ACTIVE, STATUS_EXPIRED, STATUS_PENDING


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    Raises ValidationError when the result falls past year 9999.
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    if not MINYEAR <= y <= MAXYEAR:
        raise ValidationError("Resulting expiry date is out of range.")
    day = min(start.day, calendar.monthrange(y, m)[1])
    return date(y, m, day)


def is_expired(expiry_date: date, today: date) -> bool:
    return expiry_date < today


def derive_status(record, today: date) -> str:
    """
    Display status of a record, first match wins:
    Expired (expiry before today) > Active (fee Paid) > Pending.
    """
    if is_expired(record.expiry_date, today):
        return STATUS_EXPIRED
    if record.fee_status == FEE_PAID:
        return STATUS_ACTIVE
    return STATUS_PENDING


def expiry_from_duration(join_date: date, months: int) -> date:
    return add_months(join_date, months)


def renewal_expiry(record, months: int, today: date) -> date:
    """New expiry for a renewal: months are added to max(current expiry, today)."""
    base = max(record.expiry_date, today)
    return add_months(base, months)


def expires_within(record, today: date, days: int) -> bool:
    """True for non-expired records whose expiry falls in [today, today + days]."""
    return today <= record.expiry_date and (record.expiry_date - today).days <= days


def toggled_fee_status(fee_status: str) -> str:
    # Pending counts as unpaid for toggling
    return FEE_UNPAID if fee_status == FEE_PAID else FEE_PAID
