"""
handlers/common.py
------------------
Input parsing shared by the command handlers and the decorator that turns
domain errors into chat replies.
"""

from datetime import date, datetime
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from models.errors import BillingError, InvalidArgument, InvalidTransition, NotFound, UpstreamFailure
from utils.logger import get_logger

logger = get_logger(__name__)

# Portuguese and English spellings accepted for recurrence intervals
INTERVAL_ALIASES = {
    "semanal": "weekly", "weekly": "weekly",
    "quinzenal": "biweekly", "biweekly": "biweekly",
    "mensal": "monthly", "monthly": "monthly",
    "trimestral": "quarterly", "quarterly": "quarterly",
    "anual": "yearly", "yearly": "yearly",
}
NO_RECURRENCE = ("nenhuma", "nao", "não", "none", "-")

STATUS_ALIASES = {
    "pendente": "pending", "pendentes": "pending", "pending": "pending",
    "pago": "paid", "pagas": "paid", "paid": "paid",
    "vencido": "overdue", "vencidas": "overdue", "overdue": "overdue",
}

_ERROR_PREFIX = {
    InvalidArgument: "⚠️",
    InvalidTransition: "🚫",
    NotFound: "🔎",
    UpstreamFailure: "❌",
}


def split_fields(text: str) -> list[str]:
    """'a | b |  c' -> ['a', 'b', 'c']"""
    return [part.strip() for part in text.split("|")]


def parse_id(raw: str, what: str = "ID") -> int:
    try:
        value = int(raw.strip().lstrip("#"))
    except (ValueError, AttributeError):
        raise InvalidArgument(f"{what} deve ser um número inteiro.") from None
    if value <= 0:
        raise InvalidArgument(f"{what} deve ser positivo.")
    return value


def parse_brl_amount(raw: str) -> str:
    """'R$ 1.234,50' -> '1234.50'; dotted decimals such as '99.90' pass through."""
    raw = raw.strip().removeprefix("R$").strip()
    if "," in raw:
        raw = raw.replace(".", "").replace(",", ".")
    return raw


def parse_date(raw: str) -> date:
    """Accept 2024-03-01 or 01/03/2024."""
    raw = raw.strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    raise InvalidArgument(f"Data inválida: {raw!r}. Use DD/MM/AAAA ou AAAA-MM-DD.")


def parse_interval(raw: str) -> Optional[str]:
    """
    Map a user-typed interval to its internal value.

    Returns:
        The interval, or None for "no recurrence" / empty input.
    """
    key = (raw or "").strip().lower()
    if not key or key in NO_RECURRENCE:
        return None
    if key not in INTERVAL_ALIASES:
        raise InvalidArgument(
            f"Recorrência inválida: {raw!r}. Use semanal, quinzenal, mensal, trimestral ou anual."
        )
    return INTERVAL_ALIASES[key]


def parse_key_values(tokens: list[str]) -> dict[str, str]:
    """
    Parse 'valor:150 vencimento:01/03/2024 obs:texto livre' into a dict.
    Tokens without a key are appended to the previous value.
    """
    result: dict[str, str] = {}
    last = None
    for token in tokens:
        key, sep, value = token.partition(":")
        if sep and key and not key.startswith("http"):
            last = key.strip().lower()
            result[last] = value.strip()
        elif last is not None:
            result[last] = f"{result[last]} {token}".strip()
        else:
            raise InvalidArgument(f"Campo sem nome: {token!r}")
    return result


def reports_errors(func: Callable):
    """
    Decorator that replies with the message of any BillingError raised by
    the handler instead of letting it reach the bot's error handler.
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        try:
            return await func(update, context, *args, **kwargs)
        except BillingError as e:
            logger.info(f"{func.__name__} rejected for user {update.effective_user.id}: {e}")
            prefix = _ERROR_PREFIX.get(type(e), "⚠️")
            if isinstance(e, UpstreamFailure):
                await update.message.reply_text(f"{prefix} Serviço indisponível. Tente novamente mais tarde.")
            else:
                await update.message.reply_text(f"{prefix} {e}")

    return wrapper
