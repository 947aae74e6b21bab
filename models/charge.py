"""
models/charge.py
----------------
Domain model for charges (one-off or recurring amounts owed by a client).
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

# ── Status values ─────────────────────────────────────────
STATUS_PENDING = "pending"
STATUS_PAID = "paid"
STATUS_OVERDUE = "overdue"
STATUSES = (STATUS_PENDING, STATUS_PAID, STATUS_OVERDUE)

# ── Recurrence intervals ──────────────────────────────────
INTERVALS = ("weekly", "biweekly", "monthly", "quarterly", "yearly")

STATUS_LABELS = {
    STATUS_PENDING: "Pendente",
    STATUS_PAID: "Pago",
    STATUS_OVERDUE: "Vencido",
}
CANCELED_LABEL = "Cancelada"

INTERVAL_LABELS = {
    "weekly": "semanal",
    "biweekly": "quinzenal",
    "monthly": "mensal",
    "quarterly": "trimestral",
    "yearly": "anual",
}


@dataclass
class Charge:
    """
    Represents a single charge owed by a client to a user (tenant).

    Attributes:
        id: Database primary key (None for new records).
        user_id: Tenant (Telegram user ID) owning the charge.
        client_id: Client the charge is billed to.
        amount: Positive amount, currency-agnostic.
        due_date: Calendar due date (no time of day).
        status: 'pending' | 'paid' | 'overdue'.
        is_canceled: Soft-delete flag, independent from status.
        paid_at: Set only when status becomes 'paid'.
        notes: Optional free text.
        payment_link: Optional URL the client pays through.
        is_recurrent: Whether a successor is spawned once this one is paid.
        recurrence_interval: One of INTERVALS when recurrent.
        recurrence_day: Day-of-month anchor (1-31) when recurrent.
        next_charge_date: Due date of the successor; set iff recurrent.
        parent_charge_id: The recurring charge this one succeeds.
        last_notification_sent_at: Stamp guarding against duplicate reminders.
        successor_spawned_at: Set once the next charge of the series was inserted;
            a later delete of that charge does not bring it back.
        created_at: Timestamp when the record was created.
        updated_at: Timestamp of the last write.
    """
    user_id: int
    client_id: int
    amount: Decimal
    due_date: date
    status: str = STATUS_PENDING
    is_canceled: bool = False
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    payment_link: Optional[str] = None
    is_recurrent: bool = False
    recurrence_interval: Optional[str] = None
    recurrence_day: Optional[int] = None
    next_charge_date: Optional[date] = None
    parent_charge_id: Optional[int] = None
    last_notification_sent_at: Optional[datetime] = None
    successor_spawned_at: Optional[datetime] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        """Active charges count in aggregates and sweep eligibility."""
        return not self.is_canceled

    @property
    def is_paid(self) -> bool:
        return self.status == STATUS_PAID

    @property
    def status_label(self) -> str:
        if self.is_canceled:
            return CANCELED_LABEL
        return STATUS_LABELS.get(self.status, self.status)

    def __str__(self) -> str:
        recur = f" 🔁 {INTERVAL_LABELS.get(self.recurrence_interval, '')}" if self.is_recurrent else ""
        return f"#{self.id} {self.amount:.2f} | {self.due_date} | {self.status_label}{recur}"
