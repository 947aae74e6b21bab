"""
handlers/charge_handler.py
--------------------------
Charge commands: list, create, edit, cancel, confirm payment, delete.
Delegates to ChargeService; lifecycle rules live in services/lifecycle.py.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import (
    STATUS_ALIASES,
    parse_brl_amount,
    parse_date,
    parse_id,
    parse_interval,
    parse_key_values,
    reports_errors,
    split_fields,
)
from models.charge import INTERVAL_LABELS
from models.errors import InvalidArgument
from services.charge_service import ChargeService
from security.auth import admin_only, authorized_only
from security.rate_limiter import rate_limited
from utils.formatting import format_currency, format_date
from utils.logger import get_logger

logger = get_logger(__name__)
charge_service = ChargeService()

# /edit_charge keys -> editable charge fields
EDIT_KEYS = {
    "valor": "amount",
    "vencimento": "due_date",
    "obs": "notes",
    "link": "payment_link",
    "recorrencia": "recurrence_interval",
    "recorrência": "recurrence_interval",
    "dia": "recurrence_day",
}


def describe_charge(charge) -> str:
    """One line per charge for chat listings."""
    recur = ""
    if charge.is_recurrent:
        recur = (
            f" 🔁 {INTERVAL_LABELS.get(charge.recurrence_interval, charge.recurrence_interval)}"
            f" (próxima {format_date(charge.next_charge_date)})"
        )
    notes = f"\n   📝 {charge.notes}" if charge.notes else ""
    return (
        f"#{charge.id} {format_currency(charge.amount)} - vence {format_date(charge.due_date)} "
        f"[{charge.status_label}]{recur}{notes}"
    )


def build_edit_fields(pairs: dict[str, str]) -> dict:
    """Translate 'valor:150 dia:10' style pairs into lifecycle edit kwargs."""
    fields = {}
    for key, raw in pairs.items():
        if key not in EDIT_KEYS:
            raise InvalidArgument(
                f"Campo desconhecido: {key!r}. Use valor, vencimento, obs, link, recorrencia ou dia."
            )
        name = EDIT_KEYS[key]
        if name == "due_date":
            fields[name] = parse_date(raw)
        elif name == "recurrence_interval":
            fields[name] = parse_interval(raw)
        elif name == "recurrence_day":
            fields[name] = parse_id(raw, "Dia") if raw else None
        else:
            fields[name] = parse_brl_amount(raw) if name == "amount" else raw
    return fields


@authorized_only
@rate_limited
@reports_errors
async def charges_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /charges [status] - list active charges, optionally filtered.

    Example:
        /charges vencidas
    """
    user = update.effective_user
    status = None
    if context.args:
        key = context.args[0].lower()
        if key not in STATUS_ALIASES:
            raise InvalidArgument("Filtro inválido. Use pendentes, pagas ou vencidas.")
        status = STATUS_ALIASES[key]

    charges = charge_service.list_charges(user.id, status=status)
    if not charges:
        await update.message.reply_text("📭 Nenhuma cobrança encontrada.")
        return

    lines = ["🧾 Cobranças:\n"] + [describe_charge(c) for c in charges]
    await update.message.reply_text("\n".join(lines))


@authorized_only
@rate_limited
@reports_errors
async def add_charge_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /add_charge cliente | valor | vencimento | [recorrência] | [obs].

    Examples:
        /add_charge 3 | 150,00 | 01/02/2024
        /add_charge 3 | 99.90 | 2024-02-01 | mensal | Mensalidade academia
    """
    user = update.effective_user
    parts = split_fields(" ".join(context.args or []))
    if len(parts) < 3:
        await update.message.reply_text(
            "📝 Uso: /add_charge cliente | valor | vencimento | recorrência | obs\n"
            "Exemplo: /add_charge 3 | 150,00 | 01/02/2024 | mensal | Aulas de inglês"
        )
        return

    client_id = parse_id(parts[0], "ID do cliente")
    amount = parse_brl_amount(parts[1])
    due_date = parse_date(parts[2])
    interval = parse_interval(parts[3]) if len(parts) > 3 else None
    notes = parts[4] if len(parts) > 4 and parts[4] else None

    charge = charge_service.create(
        user.id, client_id, amount, due_date, notes=notes, interval=interval,
    )
    logger.info(f"User {user.id} created charge #{charge.id} for client #{client_id}")
    await update.message.reply_text(f"✅ Cobrança criada:\n{describe_charge(charge)}")


@authorized_only
@rate_limited
@reports_errors
async def edit_charge_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /edit_charge <id> campo:valor ...

    Example:
        /edit_charge 7 valor:200 vencimento:10/03/2024 recorrencia:nenhuma
    """
    user = update.effective_user
    if not context.args or len(context.args) < 2:
        await update.message.reply_text(
            "📝 Uso: /edit_charge id campo:valor ...\n"
            "Campos: valor, vencimento, obs, link, recorrencia, dia"
        )
        return

    charge_id = parse_id(context.args[0], "ID da cobrança")
    fields = build_edit_fields(parse_key_values(context.args[1:]))

    charge = charge_service.edit(charge_id, user.id, **fields)
    await update.message.reply_text(f"✏️ Cobrança atualizada:\n{describe_charge(charge)}")


@authorized_only
@rate_limited
@reports_errors
async def cancel_charge_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cancel_charge <id> - soft-delete an open charge."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ Uso: /cancel_charge <id>")
        return

    charge_id = parse_id(context.args[0], "ID da cobrança")
    charge_service.cancel(charge_id, user.id)
    await update.message.reply_text(f"🚫 Cobrança #{charge_id} cancelada.")


@authorized_only
@rate_limited
@reports_errors
async def pay_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pay <id> - confirm a payment received outside the gateway."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ Uso: /pay <id>")
        return

    charge_id = parse_id(context.args[0], "ID da cobrança")
    outcome = charge_service.confirm_payment(charge_id, user_id=user.id)

    reply = f"✅ Pagamento confirmado: {format_currency(outcome.charge.amount)}"
    if outcome.successor is not None:
        reply += f"\n🔁 Próxima cobrança criada:\n{describe_charge(outcome.successor)}"
    await update.message.reply_text(reply)


@authorized_only
@admin_only
@rate_limited
@reports_errors
async def delete_charge_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_charge <id> - permanently remove a charge (admins only)."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ Uso: /delete_charge <id>")
        return

    charge_id = parse_id(context.args[0], "ID da cobrança")
    if charge_service.delete(charge_id, user.id):
        await update.message.reply_text(f"🗑️ Cobrança #{charge_id} removida.")
    else:
        await update.message.reply_text(f"⚠️ Cobrança #{charge_id} não encontrada.")
