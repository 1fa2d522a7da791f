"""
listing.py
Search, status tabs, sorting, pagination and dashboard counts.

The status tabs are derived from expiry + fee status, so SQL only narrows the
candidate rows; the text search, the final status filter and the page slice
happen here.
"""

from __future__ import annotations

import math
from datetime import date

import db
import membership
from config import settings
from errors import ValidationError, require_owner, service_boundary
from models import FEE_PAID, STATUS_ACTIVE, STATUS_EXPIRED, STATUS_PENDING, STATUS_TABS, ClientPage, ClientRecord, MembershipStats

SORT_COLUMNS = {
    "name": "name COLLATE NOCASE",
    "phone": "phone",
    "joinDate": "join_date",
    "expiryDate": "expiry_date",
    "lastVisit": "last_visit",
    "feeStatus": "fee_status",
    "createdAt": "created_at",
}
MAX_PAGE_SIZE = 100


def fetch_clients(search: str = "", status: str = "all", sort_by: str = "joinDate", order: str = "desc", today: date | None = None) -> list[ClientRecord]:
    """Matching records, sorted, before pagination."""
    today = today or date.today()
    if status not in STATUS_TABS:
        raise ValidationError(f"Unknown status filter {status!r}; use one of {', '.join(STATUS_TABS)}.")
    if sort_by not in SORT_COLUMNS:
        raise ValidationError(f"Cannot sort by {sort_by!r}; use one of {', '.join(SORT_COLUMNS)}.")
    if order not in ("asc", "desc"):
        raise ValidationError("Order must be 'asc' or 'desc'.")

    sql = "SELECT * FROM clients WHERE 1=1"
    params: list = []

    # Narrow by expiry/fee in SQL; derive_status below has the final say
    wanted = STATUS_TABS[status]
    if wanted == STATUS_EXPIRED:
        sql += " AND expiry_date < ?"
        params.append(today.isoformat())
    elif wanted == STATUS_ACTIVE:
        sql += " AND expiry_date >= ? AND fee_status = ?"
        params.extend([today.isoformat(), FEE_PAID])
    elif wanted == STATUS_PENDING:
        sql += " AND expiry_date >= ? AND fee_status != ?"
        params.extend([today.isoformat(), FEE_PAID])

    direction = "ASC" if order == "asc" else "DESC"
    sql += f" ORDER BY {SORT_COLUMNS[sort_by]} {direction}, id {direction}"

    records = [ClientRecord.from_row(r) for r in db.fetch_all(sql, tuple(params))]
    needle = search.strip().casefold()
    if needle:
        # SQLite only folds ASCII, so the text match runs here
        records = [r for r in records if needle in r.name.casefold() or needle in r.phone]
    if wanted is not None:
        records = [r for r in records if membership.derive_status(r, today) == wanted]
    return records


@service_boundary
def list_clients(
    *,
    authorized: bool,
    search: str = "",
    status: str = "all",
    page: int = 1,
    page_size: int = 10,
    sort_by: str = "joinDate",
    order: str = "desc",
    today: date | None = None,
) -> ClientPage:
    require_owner(authorized)
    if page < 1:
        raise ValidationError("Page must be 1 or greater.")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}.")

    records = fetch_clients(search=search, status=status, sort_by=sort_by, order=order, today=today)
    total = len(records)
    start = (page - 1) * page_size
    return ClientPage(
        clients=records[start:start + page_size],
        total=total,
        total_pages=math.ceil(total / page_size),
        current_page=page,
    )


@service_boundary
def stats(*, authorized: bool, expiring_days: int | None = None, today: date | None = None) -> MembershipStats:
    require_owner(authorized)
    today = today or date.today()
    if expiring_days is None:
        expiring_days = settings.expiring_days
    if expiring_days < 0:
        raise ValidationError("Expiring window must not be negative.")

    counts = {STATUS_ACTIVE: 0, STATUS_PENDING: 0, STATUS_EXPIRED: 0}
    expiring_soon = 0
    records = [ClientRecord.from_row(r) for r in db.fetch_all("SELECT * FROM clients")]
    for record in records:
        counts[membership.derive_status(record, today)] += 1
        if membership.expires_within(record, today, expiring_days):
            expiring_soon += 1

    return MembershipStats(
        total=len(records),
        paid=counts[STATUS_ACTIVE],
        unpaid=counts[STATUS_PENDING],
        expired=counts[STATUS_EXPIRED],
        expiring_soon=expiring_soon,
        expiring_days=expiring_days,
    )
