"""
clients.py
Client lifecycle: create, update, delete, toggle fee, renew, record visit.

Every operation takes ``authorized`` (the caller passed the auth gate) and
returns an OpResult. Photo uploads are written before the record and removed
again if the record write is rejected or fails.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date

import db
import membership
import photos
import utils
from config import settings
from errors import Conflict, NotFound, OpResult, StorageError, ValidationError, require_owner, service_boundary
from models import FEE_PAID, FEE_UNPAID, ClientRecord, PhotoUpload

logger = logging.getLogger(__name__)

# Attempts for read-modify-write operations before giving up on a busy record
MAX_WRITE_ATTEMPTS = 3


def _load(client_id: int) -> ClientRecord:
    row = db.get_client(client_id)
    if row is None:
        raise NotFound(f"Client {client_id} not found.")
    return ClientRecord.from_row(row)


def _ensure_phone_free(phone: str, exclude_id: int | None = None) -> None:
    if db.find_client_by_phone(phone, exclude_id=exclude_id) is not None:
        raise Conflict(f"A client with phone {phone} already exists.")


def _to_columns(values: dict) -> dict:
    out = {}
    for key, value in values.items():
        out[key] = value.isoformat() if isinstance(value, date) else value
    return out


def _discard_photo(ref: str | None) -> None:
    """Compensation for a failed write: remove the photo stored for this attempt."""
    if not ref:
        return
    try:
        photos.delete_photo(ref)
    except OSError:
        logger.exception("Could not remove orphaned photo %s", ref)


def _write_with_retry(client_id: int, compute) -> ClientRecord:
    """
    Re-read the record, compute changes from the fresh copy, and write them
    with a version check. Retries when another writer got there first.
    """
    for _ in range(MAX_WRITE_ATTEMPTS):
        current = _load(client_id)
        changes = compute(current)
        if db.update_client(client_id, _to_columns(changes), current.version):
            return _load(client_id)
        logger.info("Client %s changed during update, retrying", client_id)
    raise StorageError(f"Client {client_id} is being modified concurrently; try again.")


@service_boundary
def get_client(client_id: int, *, authorized: bool) -> ClientRecord:
    require_owner(authorized)
    return _load(client_id)


@service_boundary
def create_client(fields: dict, photo: PhotoUpload | None = None, *, authorized: bool, today: date | None = None) -> ClientRecord:
    require_owner(authorized)
    today = today or date.today()

    clean, errors = utils.clean_client_fields(fields)
    if errors:
        raise ValidationError(" ".join(errors))
    if photo is not None:
        photos.validate_photo(photo)

    duration = clean.pop("duration", settings.default_duration_months)
    clean.setdefault("join_date", today)
    if "expiry_date" not in clean:
        clean["expiry_date"] = membership.expiry_from_duration(clean["join_date"], duration)
    elif clean["expiry_date"] <= clean["join_date"]:
        raise ValidationError("Expiry date must be after join date.")
    clean.setdefault("fee_status", FEE_UNPAID)

    _ensure_phone_free(clean["phone"])

    photo_ref = photos.store_photo(photo) if photo is not None else None
    clean["photo_ref"] = photo_ref
    try:
        client_id = db.insert_client(_to_columns(clean))
    except sqlite3.IntegrityError:
        _discard_photo(photo_ref)
        raise Conflict(f"A client with phone {clean['phone']} already exists.")
    except sqlite3.Error:
        _discard_photo(photo_ref)
        raise

    logger.info("Created client %s (%s)", client_id, clean["name"])
    return _load(client_id)


@service_boundary
def update_client(client_id: int, fields: dict, photo: PhotoUpload | None = None, *, authorized: bool) -> OpResult:
    require_owner(authorized)

    clean, errors = utils.clean_client_fields(fields, partial=True)
    clean.pop("duration", None)
    if errors:
        raise ValidationError(" ".join(errors))
    if photo is not None:
        photos.validate_photo(photo)

    existing = _load(client_id)
    if "phone" in clean and clean["phone"] != existing.phone:
        _ensure_phone_free(clean["phone"], exclude_id=client_id)

    new_ref = photos.store_photo(photo) if photo is not None else None
    old_ref = None

    def compute(current: ClientRecord) -> dict:
        nonlocal old_ref
        join = clean.get("join_date", current.join_date)
        expiry = clean.get("expiry_date", current.expiry_date)
        if expiry <= join:
            raise ValidationError("Expiry date must be after join date.")
        changes = dict(clean)
        if new_ref:
            old_ref = current.photo_ref
            changes["photo_ref"] = new_ref
        return changes

    try:
        updated = _write_with_retry(client_id, compute)
    except sqlite3.IntegrityError:
        _discard_photo(new_ref)
        raise Conflict(f"A client with phone {clean.get('phone')} already exists.")
    except Exception:
        _discard_photo(new_ref)
        raise

    result = OpResult(ok=True, value=updated)
    if old_ref:
        try:
            photos.delete_photo(old_ref)
        except OSError as exc:
            logger.warning("Client %s updated but old photo %s was not removed: %s", client_id, old_ref, exc)
            result.warnings.append(f"Previous photo could not be removed: {exc}")

    logger.info("Updated client %s (%s)", client_id, ", ".join(sorted(clean)) or ("photo" if new_ref else "no changes"))
    return result


@service_boundary
def delete_client(client_id: int, *, authorized: bool) -> OpResult:
    require_owner(authorized)
    client = _load(client_id)

    photo_error = None
    if client.photo_ref:
        try:
            photos.delete_photo(client.photo_ref)
        except OSError as exc:
            # an orphaned photo is preferable to a client that can't be removed
            logger.warning("Photo %s of client %s could not be deleted: %s", client.photo_ref, client_id, exc)
            photo_error = exc

    if not db.delete_client(client_id):
        raise NotFound(f"Client {client_id} not found.")

    warnings = []
    if photo_error is not None:
        warnings.append(f"Client deleted but photo could not be removed: {photo_error}")

    logger.info("Deleted client %s", client_id)
    return OpResult(ok=True, value=client, warnings=warnings)


@service_boundary
def toggle_fee(client_id: int, *, authorized: bool) -> ClientRecord:
    require_owner(authorized)
    updated = _write_with_retry(
        client_id,
        lambda current: {"fee_status": membership.toggled_fee_status(current.fee_status)},
    )
    logger.info("Client %s fee status -> %s", client_id, updated.fee_status)
    return updated


@service_boundary
def renew(client_id: int, months, *, authorized: bool, today: date | None = None) -> ClientRecord:
    require_owner(authorized)
    if not utils.is_positive_int(months):
        raise ValidationError("Months must be a positive integer.")
    today = today or date.today()

    updated = _write_with_retry(
        client_id,
        lambda current: {
            "expiry_date": membership.renewal_expiry(current, months, today),
            "fee_status": FEE_PAID,
        },
    )
    logger.info("Renewed client %s by %d month(s), expires %s", client_id, months, updated.expiry_date)
    return updated


@service_boundary
def record_visit(client_id: int, *, authorized: bool, today: date | None = None) -> ClientRecord:
    require_owner(authorized)
    today = today or date.today()
    return _write_with_retry(client_id, lambda current: {"last_visit": today})
