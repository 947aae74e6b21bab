"""
utils/formatting.py
-------------------
Currency/date formatting and the WhatsApp message templates.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from config import CURRENCY_SYMBOL, DATE_DISPLAY_FORMAT

_CENTS = Decimal("0.01")

REMINDER_TEMPLATE = (
    "Olá {name}! Lembrete: sua cobrança de {amount} vence em {days} dias ({due_date})."
)
OVERDUE_TEMPLATE = (
    "Olá {name}! Sua cobrança de {amount} está vencida desde {due_date}. "
    "Por favor, regularize seu pagamento."
)
PAYMENT_CONFIRMED_TEMPLATE = (
    "Pagamento confirmado! Obrigado, {name}! Recebemos seu pagamento de {amount}."
)

DEFAULT_CLIENT_NAME = "Cliente"


def format_currency(amount, symbol: str = CURRENCY_SYMBOL) -> str:
    """Format an amount as Brazilian currency: 1234.5 -> 'R$ 1.234,50'."""
    value = Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{symbol} {text}"


def format_date(value: date) -> str:
    return value.strftime(DATE_DISPLAY_FORMAT)


def render_reminder(client_name: str, amount, due_date: date, days: int) -> str:
    return REMINDER_TEMPLATE.format(
        name=client_name or DEFAULT_CLIENT_NAME,
        amount=format_currency(amount),
        days=days,
        due_date=format_date(due_date),
    )


def render_overdue(client_name: str, amount, due_date: date) -> str:
    return OVERDUE_TEMPLATE.format(
        name=client_name or DEFAULT_CLIENT_NAME,
        amount=format_currency(amount),
        due_date=format_date(due_date),
    )


def render_payment_confirmed(client_name: str, amount) -> str:
    return PAYMENT_CONFIRMED_TEMPLATE.format(
        name=client_name or DEFAULT_CLIENT_NAME,
        amount=format_currency(amount),
    )
