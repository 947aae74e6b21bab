"""
services/notifier.py
--------------------
Fire-and-forget WhatsApp delivery through the Meta Graph API.

Delivery failures are logged and reported as False; they never propagate
into the sweep or the payment flow, whose notification records are already
committed when delivery is attempted.
"""

from typing import Optional

import httpx

from config import WHATSAPP_API_VERSION, WHATSAPP_PHONE_ID, WHATSAPP_TOKEN
from models.notification import Notification
from utils.logger import get_logger

logger = get_logger(__name__)


def normalize_phone(phone: str) -> str:
    """Keep digits only: '+55 (11) 99999-0000' -> '5511999990000'."""
    return "".join(ch for ch in phone if ch.isdigit())


class WhatsAppNotifier:
    """Sends text messages to clients' WhatsApp numbers."""

    def __init__(
        self,
        token: str = WHATSAPP_TOKEN,
        phone_id: str = WHATSAPP_PHONE_ID,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.token = token
        self.phone_id = phone_id
        self.url = f"https://graph.facebook.com/{WHATSAPP_API_VERSION}/{phone_id}/messages"
        self._client = client
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.phone_id)

    def send(self, phone: str, notification: Notification) -> bool:
        """
        Deliver one notification.

        Returns:
            True if the provider accepted the message.
        """
        if not self.enabled:
            logger.info(
                f"[WhatsApp] Disabled, not sending {notification.notification_type} "
                f"for charge #{notification.charge_id}"
            )
            return False

        payload = {
            "messaging_product": "whatsapp",
            "to": normalize_phone(phone),
            "type": "text",
            "text": {"body": notification.message_content},
        }
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            response = client.post(self.url, json=payload, headers=headers)
            if response.status_code >= 400:
                logger.error(
                    f"[WhatsApp] API error {response.status_code} for charge "
                    f"#{notification.charge_id} | {response.text}"
                )
                return False
            logger.info(
                f"[WhatsApp] Delivered {notification.notification_type} "
                f"for charge #{notification.charge_id}"
            )
            return True
        except httpx.HTTPError as e:
            logger.error(f"[WhatsApp] Request failed for charge #{notification.charge_id}: {e}")
            return False
        finally:
            if self._client is None:
                client.close()

    def send_all(self, deliveries: list[tuple[str, Notification]]) -> int:
        """Deliver (phone, notification) pairs; returns how many were accepted."""
        return sum(1 for phone, notification in deliveries if self.send(phone, notification))
