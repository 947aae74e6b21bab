from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fakes import USER_ID
from models.errors import InvalidArgument, InvalidTransition, NotFound
from services.client_service import compute_totals
from services.dashboard_service import DashboardService

PAID_AT = datetime(2024, 2, 5, 10, 0, tzinfo=timezone.utc)


def test_totals_ignore_canceled_charges(client_service, charge_service, make_charge, charge_repo, client):
    paid = make_charge(date(2024, 2, 1), amount="100")
    charge_service.confirm_payment(paid.id, paid_at=PAID_AT)
    late = make_charge(date(2024, 1, 1), amount="50")
    charge_repo.mark_overdue(late.id, date(2024, 2, 1))
    canceled = make_charge(date(2024, 3, 1), amount="999")
    charge_service.cancel(canceled.id, USER_ID)

    totals = client_service.summary(client.id, USER_ID).totals

    assert totals.total_charged == Decimal("150.00")
    assert totals.total_paid == Decimal("100.00")
    assert totals.overdue_count == 1
    assert totals.last_payment_date == PAID_AT


def test_totals_of_client_without_charges():
    totals = compute_totals([])
    assert totals.total_charged == 0
    assert totals.last_payment_date is None


def test_list_with_totals(client_service, make_charge):
    make_charge(date(2024, 2, 1), amount="30")
    other = client_service.add(USER_ID, "Ana Lima", "+55 31 97777-6666", "ana@email.com")

    summaries = {s.client.id: s for s in client_service.list_with_totals(USER_ID)}

    assert summaries[other.id].totals.total_charged == 0
    assert len(summaries) == 2
    assert sum(s.totals.total_charged for s in summaries.values()) == Decimal("30.00")


@pytest.mark.parametrize("name, phone, email", [
    ("", "+55 11 99999-0000", None),
    ("Ana", "", None),
    ("Ana", "abc", None),
    ("Ana", "+55 11 99999-0000", "not-an-email"),
])
def test_add_rejects_invalid_contact(client_service, name, phone, email):
    with pytest.raises(InvalidArgument):
        client_service.add(USER_ID, name, phone, email)


def test_edit_keeps_omitted_fields(client_service, client):
    edited = client_service.edit(client.id, USER_ID, email="maria@email.com")
    assert edited.name == "Maria Souza"
    assert edited.phone == client.phone
    assert edited.email == "maria@email.com"


def test_clients_are_tenant_scoped(client_service, client):
    with pytest.raises(NotFound):
        client_service.get(client.id, 999)
    assert client_service.list_with_totals(999) == []


def test_delete_refused_while_client_has_charges(client_service, make_charge, client, client_repo):
    make_charge(date(2024, 2, 1))
    with pytest.raises(InvalidTransition):
        client_service.delete(client.id, USER_ID)
    assert client.id in client_repo.rows


def test_delete_client_without_charges(client_service, client, client_repo):
    assert client_service.delete(client.id, USER_ID)
    assert client.id not in client_repo.rows


def test_dashboard_counts(client_repo, charge_repo, charge_service, make_charge):
    paid = make_charge(date(2024, 2, 1), amount="100")
    charge_service.confirm_payment(paid.id, paid_at=PAID_AT)
    make_charge(date(2024, 3, 1), amount="40")
    canceled = make_charge(date(2024, 3, 1), amount="500")
    charge_service.cancel(canceled.id, USER_ID)

    stats = DashboardService(client_repo, charge_repo).get_stats(USER_ID)

    assert stats.total_clients == 1
    assert stats.total_charges == 2
    assert stats.paid_charges == 1
    assert stats.pending_charges == 1
    assert stats.canceled_charges == 1
    assert stats.amount_paid == Decimal("100.00")
    assert stats.amount_pending == Decimal("40.00")
