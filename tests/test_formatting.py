from datetime import date
from decimal import Decimal

from utils.formatting import (
    format_currency,
    format_date,
    render_overdue,
    render_payment_confirmed,
    render_reminder,
)


def test_format_currency_uses_brazilian_separators():
    assert format_currency(Decimal("1234.5")) == "R$ 1.234,50"
    assert format_currency(Decimal("0.1")) == "R$ 0,10"
    assert format_currency(1000000) == "R$ 1.000.000,00"


def test_format_date():
    assert format_date(date(2024, 3, 1)) == "01/03/2024"


def test_reminder_message():
    text = render_reminder("João", Decimal("150"), date(2024, 3, 12), 2)
    assert text == "Olá João! Lembrete: sua cobrança de R$ 150,00 vence em 2 dias (12/03/2024)."


def test_overdue_message_falls_back_to_generic_name():
    text = render_overdue(None, Decimal("80"), date(2024, 3, 9))
    assert text.startswith("Olá Cliente!")
    assert "vencida desde 09/03/2024" in text


def test_payment_confirmed_message():
    assert render_payment_confirmed("Ana", Decimal("99.9")) == (
        "Pagamento confirmado! Obrigado, Ana! Recebemos seu pagamento de R$ 99,90."
    )
