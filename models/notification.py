"""
models/notification.py
----------------------
Immutable notification records produced by the sweep and by payment
confirmation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

TYPE_REMINDER = "reminder"
TYPE_OVERDUE = "overdue"
TYPE_PAYMENT_CONFIRMED = "payment_confirmed"

CHANNEL_WHATSAPP = "whatsapp"

STATUS_QUEUED = "queued"


@dataclass(frozen=True)
class Notification:
    """
    A message addressed to a client about one charge.

    Attributes:
        charge_id: Charge the message is about.
        client_id: Recipient client.
        user_id: Tenant owning the charge.
        notification_type: 'reminder' | 'overdue' | 'payment_confirmed'.
        channel: Delivery channel (always 'whatsapp').
        message_content: Rendered text.
        sent_at: Creation time of the record.
        status: Delivery bookkeeping state at creation.
        id: Database primary key (None until persisted).
    """
    charge_id: int
    client_id: int
    user_id: int
    notification_type: str
    message_content: str
    sent_at: datetime
    channel: str = CHANNEL_WHATSAPP
    status: str = STATUS_QUEUED
    id: Optional[int] = None
