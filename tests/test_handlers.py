import asyncio
from datetime import date
from types import SimpleNamespace

import pytest

from handlers import common
from handlers.charge_handler import build_edit_fields
from handlers.common import (
    parse_brl_amount,
    parse_date,
    parse_id,
    parse_interval,
    parse_key_values,
    reports_errors,
    split_fields,
)
from handlers.export_handler import parse_period
from models.errors import InvalidArgument, InvalidTransition, UpstreamFailure
from security import rate_limiter


class FakeMessage:
    def __init__(self):
        self.replies = []

    async def reply_text(self, text, **kwargs):
        self.replies.append(text)


def make_update(user_id=111):
    return SimpleNamespace(
        effective_user=SimpleNamespace(id=user_id, username="tester", first_name="Test"),
        message=FakeMessage(),
    )


def test_split_fields():
    assert split_fields(" Maria | +55 11 9999-0000 |  ") == ["Maria", "+55 11 9999-0000", ""]


@pytest.mark.parametrize("raw, expected", [("7", 7), ("#12", 12), (" 3 ", 3)])
def test_parse_id(raw, expected):
    assert parse_id(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "0", "-4", ""])
def test_parse_id_rejects(raw):
    with pytest.raises(InvalidArgument):
        parse_id(raw)


def test_parse_date_accepts_both_formats():
    assert parse_date("2024-03-01") == date(2024, 3, 1)
    assert parse_date("01/03/2024") == date(2024, 3, 1)
    with pytest.raises(InvalidArgument):
        parse_date("31/02/2024")


def test_parse_interval():
    assert parse_interval("Mensal") == "monthly"
    assert parse_interval("quinzenal") == "biweekly"
    assert parse_interval("nenhuma") is None
    assert parse_interval("") is None
    with pytest.raises(InvalidArgument):
        parse_interval("diária")


@pytest.mark.parametrize("raw, expected", [
    ("1.234,50", "1234.50"),
    ("R$ 150,00", "150.00"),
    ("99.90", "99.90"),
])
def test_parse_brl_amount(raw, expected):
    assert parse_brl_amount(raw) == expected


def test_parse_key_values_joins_free_text():
    pairs = parse_key_values(["valor:150", "obs:aulas", "de", "março", "link:https://pay.me/x"])
    assert pairs == {"valor": "150", "obs": "aulas de março", "link": "https://pay.me/x"}


def test_parse_key_values_rejects_leading_text():
    with pytest.raises(InvalidArgument):
        parse_key_values(["oops", "valor:10"])


def test_build_edit_fields():
    fields = build_edit_fields({"valor": "1.000,00", "vencimento": "10/03/2024", "recorrencia": "nenhuma"})
    assert fields == {"amount": "1000.00", "due_date": date(2024, 3, 10), "recurrence_interval": None}
    with pytest.raises(InvalidArgument):
        build_edit_fields({"status": "pago"})


def test_parse_period():
    assert parse_period([]) == (None, None)
    assert parse_period(["2024", "3"]) == (2024, 3)
    with pytest.raises(ValueError):
        parse_period(["2024", "13"])
    with pytest.raises(ValueError):
        parse_period(["2024"])


def test_reports_errors_replies_with_message():
    @reports_errors
    async def handler(update, context):
        raise InvalidTransition("Charge #3 is already paid")

    update = make_update()
    asyncio.run(handler(update, None))
    assert update.message.replies == ["🚫 Charge #3 is already paid"]


def test_reports_errors_hides_upstream_details():
    @reports_errors
    async def handler(update, context):
        raise UpstreamFailure("connection to 10.0.0.5 refused")

    update = make_update()
    asyncio.run(handler(update, None))
    assert "10.0.0.5" not in update.message.replies[0]


def test_rate_limiter_sliding_window(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_MESSAGES", 2)
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_WINDOW_SECONDS", 60)
    monkeypatch.setattr(rate_limiter, "_user_timestamps", rate_limiter.defaultdict(rate_limiter.deque))

    assert rate_limiter.allow(1, now=0)
    assert rate_limiter.allow(1, now=10)
    assert not rate_limiter.allow(1, now=20)
    assert rate_limiter.allow(2, now=20)
    assert rate_limiter.allow(1, now=61)


def test_interval_aliases_cover_every_interval():
    from models.charge import INTERVALS
    assert set(common.INTERVAL_ALIASES.values()) == set(INTERVALS)


def test_admin_only_blocks_regular_tenants(monkeypatch):
    from security import auth

    calls = []

    @auth.admin_only
    async def handler(update, context):
        calls.append(update.effective_user.id)

    monkeypatch.setattr(auth, "ADMIN_USER_IDS", [1])
    regular, admin = make_update(user_id=2), make_update(user_id=1)
    asyncio.run(handler(regular, None))
    asyncio.run(handler(admin, None))

    assert calls == [1]
    assert "/cancel" in regular.message.replies[0]
