from datetime import datetime, timezone

import httpx

from models.notification import Notification, TYPE_REMINDER
from services.notifier import WhatsAppNotifier, normalize_phone

NOTIFICATION = Notification(
    charge_id=1,
    client_id=1,
    user_id=111,
    notification_type=TYPE_REMINDER,
    message_content="Olá Maria! Lembrete",
    sent_at=datetime(2024, 3, 10, tzinfo=timezone.utc),
)


def test_normalize_phone():
    assert normalize_phone("+55 (11) 99999-0000") == "5511999990000"


def test_send_posts_text_message():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    notifier = WhatsAppNotifier(token="tok", phone_id="123", client=client)

    assert notifier.send("+55 11 99999-0000", NOTIFICATION)
    request = seen[0]
    assert request.url.path.endswith("/123/messages")
    assert request.headers["Authorization"] == "Bearer tok"
    assert b'"to":"5511999990000"' in request.content.replace(b" ", b"")


def test_api_error_is_reported_not_raised():
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(400, text="bad")))
    notifier = WhatsAppNotifier(token="tok", phone_id="123", client=client)
    assert notifier.send("5511999990000", NOTIFICATION) is False


def test_network_error_is_reported_not_raised():
    def boom(request):
        raise httpx.ConnectError("unreachable", request=request)

    notifier = WhatsAppNotifier(token="tok", phone_id="123", client=httpx.Client(transport=httpx.MockTransport(boom)))
    assert notifier.send("5511999990000", NOTIFICATION) is False


def test_disabled_without_credentials():
    notifier = WhatsAppNotifier(token="", phone_id="")
    assert not notifier.enabled
    assert notifier.send_all([("5511999990000", NOTIFICATION)]) == 0
