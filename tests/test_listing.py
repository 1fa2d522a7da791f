from datetime import date

import pytest

import listing
from models import FEE_PAID, FEE_PENDING, FEE_UNPAID
from tests.conftest import make_client

TODAY = date(2024, 3, 1)


@pytest.fixture()
def roster():
    """Four clients with known derived statuses as of TODAY."""
    return {
        "active": make_client(name="Amir Khan", phone="9876500001", joinDate="2024-01-01", expiryDate="2024-04-01", feeStatus=FEE_PAID),
        "pending": make_client(name="Bina Shah", phone="9876500002", joinDate="2024-01-10", expiryDate="2024-04-01", feeStatus=FEE_UNPAID),
        "expired": make_client(name="Chen Wei", phone="9876500003", joinDate="2023-12-01", expiryDate="2024-02-01", feeStatus=FEE_PAID),
        "other": make_client(name="Zara Ali", phone="1234500004", joinDate="2024-02-01", expiryDate="2024-05-01", feeStatus=FEE_PAID),
    }


def _ids(page):
    return [c.id for c in page.clients]


def test_search_with_paid_tab_counts_only_matches(roster):
    result = listing.list_clients(authorized=True, search="98765", status="paid", page=1, page_size=10, today=TODAY)
    assert result.ok
    page = result.value
    assert _ids(page) == [roster["active"].id]
    assert page.total == 1
    assert page.total_pages == 1
    assert page.current_page == 1


def test_expired_tab_ignores_paid_fee(roster):
    page = listing.list_clients(authorized=True, status="expired", today=TODAY).value
    assert _ids(page) == [roster["expired"].id]


def test_unpaid_tab_includes_pending_fee(roster):
    pending_fee = make_client(name="Dev Rao", phone="9876500005", joinDate="2024-02-15", expiryDate="2024-03-15", feeStatus=FEE_PENDING)
    page = listing.list_clients(authorized=True, status="unpaid", today=TODAY).value
    assert set(_ids(page)) == {roster["pending"].id, pending_fee.id}


def test_default_sort_is_join_date_descending(roster):
    page = listing.list_clients(authorized=True, today=TODAY).value
    assert _ids(page) == [roster[k].id for k in ("other", "pending", "active", "expired")]


def test_sort_by_name_ascending(roster):
    page = listing.list_clients(authorized=True, sort_by="name", order="asc", today=TODAY).value
    assert [c.name for c in page.clients] == ["Amir Khan", "Bina Shah", "Chen Wei", "Zara Ali"]


def test_pagination_applies_after_status_filter(roster):
    first = listing.list_clients(authorized=True, status="paid", page=1, page_size=1, today=TODAY).value
    second = listing.list_clients(authorized=True, status="paid", page=2, page_size=1, today=TODAY).value
    assert first.total == second.total == 2
    assert first.total_pages == 2
    assert _ids(first) == [roster["other"].id]
    assert _ids(second) == [roster["active"].id]


def test_page_past_the_end_is_empty(roster):
    page = listing.list_clients(authorized=True, page=3, page_size=2, today=TODAY).value
    assert page.clients == []
    assert page.total == 4


def test_search_is_case_insensitive_on_name(roster):
    page = listing.list_clients(authorized=True, search="zARA", today=TODAY).value
    assert _ids(page) == [roster["other"].id]


def test_search_treats_wildcards_literally(roster):
    page = listing.list_clients(authorized=True, search="%", today=TODAY).value
    assert page.total == 0
    assert page.total_pages == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"status": "active"},
        {"sort_by": "password"},
        {"order": "sideways"},
        {"page": 0},
        {"page_size": 0},
        {"page_size": 101},
    ],
)
def test_invalid_listing_arguments(kwargs):
    result = listing.list_clients(authorized=True, **kwargs)
    assert result.kind == "ValidationError"


def test_listing_requires_owner(roster):
    assert listing.list_clients(authorized=False).kind == "Unauthorized"
    assert listing.stats(authorized=False).kind == "Unauthorized"


def test_stats_follow_status_precedence(roster):
    stats = listing.stats(authorized=True, expiring_days=7, today=TODAY).value
    assert (stats.total, stats.paid, stats.unpaid, stats.expired) == (4, 2, 1, 1)
    assert stats.expiring_soon == 0


def test_stats_expiring_window(roster):
    stats = listing.stats(authorized=True, expiring_days=31, today=TODAY).value
    # active and pending both expire 2024-04-01, 31 days out
    assert stats.expiring_soon == 2
    assert stats.expiring_days == 31


def test_stats_on_empty_store():
    stats = listing.stats(authorized=True, today=TODAY).value
    assert stats.to_dict() == {
        "total": 0,
        "paid": 0,
        "unpaid": 0,
        "expired": 0,
        "expiringSoon": 0,
        "expiringDays": 7,
    }


def test_search_folds_non_ascii_case():
    client = make_client(name="Éva Łukasz", phone="9876500009", joinDate="2024-01-05", expiryDate="2024-04-05")
    for needle in ("éva", "ÉVA", "łukasz"):
        page = listing.list_clients(authorized=True, search=needle, today=TODAY).value
        assert _ids(page) == [client.id], needle


def test_name_sort_ignores_case():
    make_client(name="Zara", phone="9876500010", joinDate="2024-01-05", expiryDate="2024-04-05")
    make_client(name="amir", phone="9876500011", joinDate="2024-01-06", expiryDate="2024-04-05")
    page = listing.list_clients(authorized=True, sort_by="name", order="asc", today=TODAY).value
    assert [c.name for c in page.clients] == ["amir", "Zara"]


def test_stats_with_huge_expiring_window(roster):
    stats = listing.stats(authorized=True, expiring_days=10**12, today=TODAY).value
    assert stats.expiring_soon == 3
