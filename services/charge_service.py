"""
services/charge_service.py
--------------------------
Business logic for charges: creation, edits, cancellation, payment
confirmation (with recurrence spawning) and administrative deletion.

Every operation loads the charge, applies the lifecycle transition in
memory (which raises on illegal moves) and persists it through a guarded
repository update. A guarded update that touches no row means another
writer got there first, and is reported as InvalidTransition.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from config import HARD_DELETE_CASCADE
from models.charge import Charge
from models.errors import InvalidTransition, NotFound, UpstreamFailure
from models.notification import Notification, TYPE_PAYMENT_CONFIRMED
from repositories.charge_repo import ChargeRepository
from repositories.client_repo import ClientRepository
from repositories.notification_repo import NotificationRepository
from services import lifecycle
from services.notifier import WhatsAppNotifier
from utils.formatting import render_payment_confirmed
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PaymentOutcome:
    """What a payment confirmation produced."""
    charge: Charge
    successor: Optional[Charge] = None
    notification: Optional[Notification] = None


class ChargeService:
    """Handles all business logic for charges."""

    def __init__(
        self,
        charge_repo: Optional[ChargeRepository] = None,
        client_repo: Optional[ClientRepository] = None,
        notification_repo: Optional[NotificationRepository] = None,
        notifier: Optional[WhatsAppNotifier] = None,
        hard_delete_cascade: bool = HARD_DELETE_CASCADE,
    ):
        self.charges = charge_repo or ChargeRepository()
        self.clients = client_repo or ClientRepository()
        self.notifications = notification_repo or NotificationRepository()
        self.notifier = notifier or WhatsAppNotifier()
        self.hard_delete_cascade = hard_delete_cascade

    # ── Queries ───────────────────────────────────────────

    def get(self, charge_id: int, user_id: Optional[int] = None) -> Charge:
        """
        Fetch a charge or raise NotFound.

        Args:
            charge_id: Charge primary key.
            user_id: Tenant scope; None for system callers (payment webhook).
        """
        charge = self.charges.get_by_id(charge_id, user_id)
        if charge is None:
            raise NotFound(f"Charge #{charge_id} not found")
        return charge

    def list_charges(
        self, user_id: int, status: Optional[str] = None, include_canceled: bool = False
    ) -> list[Charge]:
        return self.charges.get_all(user_id, status=status, include_canceled=include_canceled)

    def client_history(self, client_id: int, user_id: int) -> list[Charge]:
        """All charges of a client, canceled included (audit history)."""
        if self.clients.get_by_id(client_id, user_id) is None:
            raise NotFound(f"Client #{client_id} not found")
        return self.charges.get_by_client(client_id, user_id)

    # ── Commands ──────────────────────────────────────────

    def create(
        self,
        user_id: int,
        client_id: int,
        amount,
        due_date: date,
        notes: Optional[str] = None,
        interval: Optional[str] = None,
        recurrence_day: Optional[int] = None,
        payment_link: Optional[str] = None,
    ) -> Charge:
        """
        Create and persist a new charge for one of the user's clients.

        Raises:
            NotFound: If the client does not belong to the user.
            InvalidArgument: On invalid amount, interval or recurrence day.
        """
        if self.clients.get_by_id(client_id, user_id) is None:
            raise NotFound(f"Client #{client_id} not found")
        charge = lifecycle.create_charge(
            user_id, client_id, amount, due_date,
            notes=notes, interval=interval,
            recurrence_day=recurrence_day, payment_link=payment_link,
        )
        return self.charges.add(charge)

    def edit(self, charge_id: int, user_id: int, today: Optional[date] = None, **fields) -> Charge:
        """Apply user edits to an open charge."""
        charge = self.get(charge_id, user_id)
        lifecycle.edit(charge, today or date.today(), **fields)
        if not self.charges.update(charge):
            raise InvalidTransition(f"Charge #{charge_id} changed meanwhile and can no longer be edited")
        logger.info(f"Edited charge #{charge_id}: {', '.join(sorted(fields))}")
        return charge

    def cancel(self, charge_id: int, user_id: int) -> Charge:
        """
        Soft-delete a pending/overdue charge.

        Raises:
            InvalidTransition: If the charge is paid (even if the payment
                landed while the cancellation was in flight).
        """
        charge = self.get(charge_id, user_id)
        lifecycle.cancel(charge)
        if not self.charges.cancel(charge_id, user_id):
            raise InvalidTransition(f"Charge #{charge_id} was paid or canceled meanwhile")
        return charge

    def confirm_payment(
        self,
        charge_id: int,
        paid_at: Optional[datetime] = None,
        user_id: Optional[int] = None,
        transaction_id: Optional[str] = None,
    ) -> PaymentOutcome:
        """
        Mark a charge as paid, spawn its successor if recurrent and record a
        payment_confirmed notification.

        Raises:
            NotFound: Unknown charge.
            InvalidTransition: Already paid or canceled.
        """
        paid_at = paid_at or datetime.now(timezone.utc)
        charge = self.get(charge_id, user_id)
        successor = lifecycle.confirm_payment(charge, paid_at)

        if not self.charges.mark_paid(charge_id, paid_at):
            raise InvalidTransition(f"Charge #{charge_id} was paid or canceled meanwhile")
        if transaction_id:
            logger.info(f"Charge #{charge_id} paid via transaction {transaction_id}")

        if successor is not None:
            try:
                successor = self.charges.add_successor(successor)
            except UpstreamFailure as e:
                # the sweep's successor reconciliation picks this up
                logger.error(f"Could not create successor of charge #{charge_id}: {e}")
                successor = None

        notification = self._record_payment_confirmation(charge)
        return PaymentOutcome(charge, successor, notification)

    def delete(self, charge_id: int, user_id: int) -> bool:
        """
        Permanently delete a charge (administrative, outside the lifecycle).

        Raises:
            InvalidTransition: If notifications reference the charge and
                cascading deletes are disabled.
        """
        self.get(charge_id, user_id)
        if not self.hard_delete_cascade and self.notifications.count_for_charge(charge_id) > 0:
            raise InvalidTransition(
                f"Charge #{charge_id} has notifications; cancel it instead of deleting"
            )
        return self.charges.delete(charge_id, user_id)

    # ── Helpers ───────────────────────────────────────────

    def _record_payment_confirmation(self, charge: Charge) -> Optional[Notification]:
        """Payment already committed; failures here are logged, not raised."""
        try:
            client = self.clients.get_by_id(charge.client_id)
            notification = self.notifications.add(Notification(
                charge_id=charge.id,
                client_id=charge.client_id,
                user_id=charge.user_id,
                notification_type=TYPE_PAYMENT_CONFIRMED,
                message_content=render_payment_confirmed(client.name if client else None, charge.amount),
                sent_at=datetime.now(timezone.utc),
            ))
        except UpstreamFailure as e:
            logger.error(f"Could not record payment confirmation for charge #{charge.id}: {e}")
            return None
        if client is not None:
            self.notifier.send(client.phone, notification)
        return notification
