"""
models/client.py
----------------
Domain model for clients and their derived financial totals.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class Client:
    """
    A person or company a user bills.

    Attributes:
        id: Database primary key (None for new records).
        user_id: Tenant (Telegram user ID) owning the client.
        name: Display name used in notification messages.
        phone: Notification address (WhatsApp number).
        email: Optional contact e-mail.
        created_at: Timestamp when the record was created.
    """
    user_id: int
    name: str
    phone: str
    email: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __str__(self) -> str:
        return f"#{self.id} {self.name} ({self.phone})"


@dataclass
class ClientTotals:
    """
    Aggregates over a client's active (non-canceled) charges.
    Always recomputed from the charge set, never persisted.
    """
    total_charged: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    overdue_count: int = 0
    last_payment_date: Optional[datetime] = None


@dataclass
class ClientSummary:
    """A client together with its freshly computed totals."""
    client: Client
    totals: ClientTotals = field(default_factory=ClientTotals)
