"""
models.py
Lightweight domain helpers (fee/status values, plans, dataclasses).
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime

# Stored fee status (current fee cycle only)
FEE_PAID = "Paid"
FEE_UNPAID = "Unpaid"
FEE_PENDING = "Pending"
FEE_STATUSES = (FEE_PAID, FEE_UNPAID, FEE_PENDING)

# Derived display status (never stored)
STATUS_ACTIVE = "Active"
STATUS_PENDING = "Pending"
STATUS_EXPIRED = "Expired"

# Listing tabs -> derived status
STATUS_TABS = {
    "all": None,
    "paid": STATUS_ACTIVE,
    "unpaid": STATUS_PENDING,
    "expired": STATUS_EXPIRED,
}

# Plan durations in months (used for expiry auto-calculation)
PLAN_MONTHS = {
    "1 month": 1,
    "3 months": 3,
    "6 months": 6,
    "12 months": 12,
}


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


@dataclass(frozen=True)
class ClientRecord:
    id: int
    name: str
    phone: str
    photo_ref: str | None
    join_date: date
    expiry_date: date
    last_visit: date | None
    fee_status: str  # Paid/Unpaid/Pending
    created_at: datetime
    version: int = 0

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ClientRecord":
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            photo_ref=row["photo_ref"] or None,
            join_date=date.fromisoformat(row["join_date"]),
            expiry_date=date.fromisoformat(row["expiry_date"]),
            last_visit=_parse_date(row["last_visit"]),
            fee_status=row["fee_status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            version=row["version"],
        )

    def to_dict(self) -> dict:
        """JSON-friendly view with the camelCase keys the HTTP API uses."""
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "photo": self.photo_ref,
            "joinDate": self.join_date.isoformat(),
            "expiryDate": self.expiry_date.isoformat(),
            "lastVisit": self.last_visit.isoformat() if self.last_visit else None,
            "feeStatus": self.fee_status,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class PhotoUpload:
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class ClientPage:
    clients: list[ClientRecord]
    total: int
    total_pages: int
    current_page: int

    def to_dict(self) -> dict:
        return {
            "clients": [c.to_dict() for c in self.clients],
            "total": self.total,
            "totalPages": self.total_pages,
            "currentPage": self.current_page,
        }


@dataclass(frozen=True)
class MembershipStats:
    total: int
    paid: int
    unpaid: int
    expired: int
    expiring_soon: int
    expiring_days: int

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "paid": self.paid,
            "unpaid": self.unpaid,
            "expired": self.expired,
            "expiringSoon": self.expiring_soon,
            "expiringDays": self.expiring_days,
        }
