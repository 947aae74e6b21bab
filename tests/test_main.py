import asyncio
from types import SimpleNamespace

import main
from services.sweep_service import SweepResult


class FakeBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text):
        self.sent.append((chat_id, text))


def test_sweep_summary_reports_counts():
    result = SweepResult(overdue_updated=True, charges_marked_overdue=3, reminders_sent=2)
    summary = main.sweep_summary(result)
    assert "vencidas: 3" in summary
    assert "True" not in summary


def test_run_sweep_notifies_admins_only(monkeypatch):
    class StubSweep:
        def run(self):
            return SweepResult(charges_marked_overdue=1)

    monkeypatch.setattr(main, "SweepService", StubSweep)
    monkeypatch.setattr(main, "ADMIN_USER_IDS", [1])
    bot = FakeBot()

    asyncio.run(main.run_sweep(SimpleNamespace(bot=bot)))

    assert [chat_id for chat_id, _ in bot.sent] == [1]


def test_run_sweep_failure_sends_nothing(monkeypatch):
    class BrokenSweep:
        def run(self):
            raise RuntimeError("database down")

    monkeypatch.setattr(main, "SweepService", BrokenSweep)
    monkeypatch.setattr(main, "ADMIN_USER_IDS", [1])
    bot = FakeBot()

    asyncio.run(main.run_sweep(SimpleNamespace(bot=bot)))

    assert bot.sent == []
