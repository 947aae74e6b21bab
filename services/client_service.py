"""
services/client_service.py
--------------------------
Business logic for clients and their derived totals.

Totals are never read from storage: they are recomputed from the client's
charges on every call, counting active (non-canceled) charges only.
"""

import re
from decimal import Decimal
from typing import Iterable, Optional

from config import HARD_DELETE_CASCADE
from models.charge import Charge, STATUS_OVERDUE, STATUS_PAID
from models.client import Client, ClientSummary, ClientTotals
from models.errors import InvalidArgument, InvalidTransition, NotFound
from repositories.charge_repo import ChargeRepository
from repositories.client_repo import ClientRepository
from utils.logger import get_logger

logger = get_logger(__name__)

_PHONE_RE = re.compile(r"^\+?[\d\s().-]{8,20}$")


def compute_totals(charges: Iterable[Charge]) -> ClientTotals:
    """
    Aggregate a client's charges. Canceled charges are ignored.

    Returns:
        ClientTotals with total_charged, total_paid, overdue_count and
        last_payment_date.
    """
    totals = ClientTotals()
    for charge in charges:
        if not charge.is_active:
            continue
        totals.total_charged += Decimal(charge.amount)
        if charge.status == STATUS_PAID:
            totals.total_paid += Decimal(charge.amount)
            if charge.paid_at and (
                totals.last_payment_date is None or charge.paid_at > totals.last_payment_date
            ):
                totals.last_payment_date = charge.paid_at
        elif charge.status == STATUS_OVERDUE:
            totals.overdue_count += 1
    return totals


def _clean_contact(name: str, phone: str, email: Optional[str]) -> tuple[str, str, Optional[str]]:
    name = (name or "").strip()
    phone = (phone or "").strip()
    email = (email or "").strip() or None
    if not name:
        raise InvalidArgument("Client name is required")
    if not phone or not _PHONE_RE.match(phone):
        raise InvalidArgument(f"Invalid phone number {phone!r}")
    if email is not None and "@" not in email:
        raise InvalidArgument(f"Invalid e-mail {email!r}")
    return name, phone, email


class ClientService:
    """Manages a user's clients."""

    def __init__(
        self,
        client_repo: Optional[ClientRepository] = None,
        charge_repo: Optional[ChargeRepository] = None,
        hard_delete_cascade: bool = HARD_DELETE_CASCADE,
    ):
        self.clients = client_repo or ClientRepository()
        self.charges = charge_repo or ChargeRepository()
        self.hard_delete_cascade = hard_delete_cascade

    def add(self, user_id: int, name: str, phone: str, email: Optional[str] = None) -> Client:
        """Register a new client. Phone is required (it is the notification address)."""
        name, phone, email = _clean_contact(name, phone, email)
        return self.clients.add(Client(user_id=user_id, name=name, phone=phone, email=email))

    def edit(
        self,
        client_id: int,
        user_id: int,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Client:
        """Update contact data; omitted fields keep their value."""
        client = self.get(client_id, user_id)
        client.name, client.phone, client.email = _clean_contact(
            name if name is not None else client.name,
            phone if phone is not None else client.phone,
            email if email is not None else client.email,
        )
        if not self.clients.update(client):
            raise NotFound(f"Client #{client_id} not found")
        return client

    def get(self, client_id: int, user_id: int) -> Client:
        client = self.clients.get_by_id(client_id, user_id)
        if client is None:
            raise NotFound(f"Client #{client_id} not found")
        return client

    def summary(self, client_id: int, user_id: int) -> ClientSummary:
        client = self.get(client_id, user_id)
        return ClientSummary(client, compute_totals(self.charges.get_by_client(client_id, user_id)))

    def list_with_totals(self, user_id: int) -> list[ClientSummary]:
        """All clients of a user, each with freshly computed totals."""
        charges_by_client: dict[int, list[Charge]] = {}
        for charge in self.charges.get_all(user_id, include_canceled=False):
            charges_by_client.setdefault(charge.client_id, []).append(charge)
        return [
            ClientSummary(client, compute_totals(charges_by_client.get(client.id, [])))
            for client in self.clients.get_all(user_id)
        ]

    def delete(self, client_id: int, user_id: int) -> bool:
        """
        Permanently delete a client.

        Raises:
            InvalidTransition: If the client has charges and cascading
                deletes are disabled.
        """
        self.get(client_id, user_id)
        if not self.hard_delete_cascade and self.clients.count_charges(client_id) > 0:
            raise InvalidTransition(
                f"Client #{client_id} has charges; cancel them or enable cascading deletes"
            )
        return self.clients.delete(client_id, user_id)
