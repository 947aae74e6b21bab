from datetime import date
from decimal import Decimal

import pytest

from fakes import USER_ID, FakeChargeRepository, FakeClientRepository, FakeNotificationRepository, FakeNotifier
from models.client import Client
from services.charge_service import ChargeService
from services.client_service import ClientService
from services.sweep_service import SweepService


@pytest.fixture
def charge_repo():
    return FakeChargeRepository()


@pytest.fixture
def client_repo(charge_repo):
    return FakeClientRepository(charges=charge_repo)


@pytest.fixture
def notification_repo():
    return FakeNotificationRepository()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(client_repo):
    return client_repo.add(Client(user_id=USER_ID, name="Maria Souza", phone="+55 11 99999-0000"))


@pytest.fixture
def charge_service(charge_repo, client_repo, notification_repo, notifier):
    return ChargeService(charge_repo, client_repo, notification_repo, notifier, hard_delete_cascade=False)


@pytest.fixture
def client_service(client_repo, charge_repo):
    return ClientService(client_repo, charge_repo, hard_delete_cascade=False)


@pytest.fixture
def sweep_service(charge_repo, client_repo, notification_repo, notifier):
    return SweepService(
        charge_repo, client_repo, notification_repo, notifier,
        reminder_days_ahead=2,
        overdue_alert_interval_hours=0,
        use_overdue_procedure=False,
    )


@pytest.fixture
def make_charge(charge_service, client):
    """Create a persisted charge for the default client."""
    def _make(due_date: date, amount="100.00", **kwargs):
        return charge_service.create(USER_ID, client.id, Decimal(amount), due_date, **kwargs)
    return _make
