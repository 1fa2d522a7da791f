from datetime import date
from types import SimpleNamespace

import pytest

import membership
from errors import ValidationError
from models import FEE_PAID, FEE_PENDING, FEE_UNPAID, STATUS_ACTIVE, STATUS_EXPIRED, STATUS_PENDING

TODAY = date(2024, 3, 1)


def _record(expiry: date, fee: str = FEE_UNPAID):
    return SimpleNamespace(expiry_date=expiry, fee_status=fee)


@pytest.mark.parametrize("fee", [FEE_PAID, FEE_UNPAID, FEE_PENDING])
def test_past_expiry_is_expired_whatever_the_fee(fee):
    assert membership.derive_status(_record(date(2024, 2, 29), fee), TODAY) == STATUS_EXPIRED


def test_expiry_today_is_not_expired():
    assert membership.derive_status(_record(TODAY, FEE_PAID), TODAY) == STATUS_ACTIVE
    assert membership.derive_status(_record(TODAY, FEE_UNPAID), TODAY) == STATUS_PENDING


@pytest.mark.parametrize(
    "fee, expected",
    [(FEE_PAID, STATUS_ACTIVE), (FEE_UNPAID, STATUS_PENDING), (FEE_PENDING, STATUS_PENDING)],
)
def test_unexpired_status_follows_fee(fee, expected):
    assert membership.derive_status(_record(date(2024, 6, 1), fee), TODAY) == expected


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 3, 31), 1, date(2024, 4, 30)),
        (date(2024, 11, 15), 2, date(2025, 1, 15)),
        (date(2024, 1, 15), 12, date(2025, 1, 15)),
    ],
)
def test_add_months_clamps_to_month_end(start, months, expected):
    assert membership.add_months(start, months) == expected


def test_renewal_of_expired_membership_starts_today():
    record = _record(date(2024, 2, 15))
    assert membership.renewal_expiry(record, 1, TODAY) == date(2024, 4, 1)


def test_renewal_of_running_membership_extends_current_expiry():
    record = _record(date(2024, 5, 10), FEE_PAID)
    assert membership.renewal_expiry(record, 2, TODAY) == date(2024, 7, 10)


def test_renewal_never_moves_expiry_back():
    for expiry in (date(2023, 12, 1), TODAY, date(2024, 3, 2), date(2025, 1, 31)):
        assert membership.renewal_expiry(_record(expiry), 1, TODAY) > expiry


def test_expiry_from_duration():
    assert membership.expiry_from_duration(date(2024, 1, 15), 3) == date(2024, 4, 15)


def test_toggled_fee_status():
    assert membership.toggled_fee_status(FEE_PAID) == FEE_UNPAID
    assert membership.toggled_fee_status(FEE_UNPAID) == FEE_PAID
    assert membership.toggled_fee_status(FEE_PENDING) == FEE_PAID


def test_expires_within_window():
    assert membership.expires_within(_record(TODAY), TODAY, 7)
    assert membership.expires_within(_record(date(2024, 3, 8)), TODAY, 7)
    assert not membership.expires_within(_record(date(2024, 3, 9)), TODAY, 7)
    assert not membership.expires_within(_record(date(2024, 2, 29)), TODAY, 7)


def test_add_months_up_to_last_supported_year():
    assert membership.add_months(date(9999, 11, 30), 1) == date(9999, 12, 30)


def test_add_months_past_last_supported_year():
    with pytest.raises(ValidationError):
        membership.add_months(date(9999, 12, 15), 1)


def test_expires_within_huge_window():
    assert membership.expires_within(_record(date(9999, 12, 31)), TODAY, 10**12)
