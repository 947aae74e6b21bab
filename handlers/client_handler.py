"""
handlers/client_handler.py
--------------------------
Client management commands. Delegates to ClientService / ChargeService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import parse_id, reports_errors, split_fields
from repositories.profile_repo import ProfileRepository
from services.charge_service import ChargeService
from services.client_service import ClientService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.formatting import format_currency, format_date
from utils.logger import get_logger

logger = get_logger(__name__)
client_service = ClientService()
charge_service = ChargeService()
profile_repo = ProfileRepository()


@authorized_only
@rate_limited
async def clients_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clients - list clients with totals computed from active charges."""
    user = update.effective_user
    summaries = client_service.list_with_totals(user.id)
    if not summaries:
        await update.message.reply_text(
            "📭 Nenhum cliente cadastrado.\nUse /add_client Nome | Telefone | E-mail"
        )
        return

    lines = ["👥 Seus clientes:\n"]
    for s in summaries:
        overdue = f" | ⚠️ {s.totals.overdue_count} vencida(s)" if s.totals.overdue_count else ""
        lines.append(
            f"#{s.client.id} {s.client.name} ({s.client.phone})\n"
            f"  Cobrado: {format_currency(s.totals.total_charged)} | "
            f"Pago: {format_currency(s.totals.total_paid)}{overdue}"
        )
    await update.message.reply_text("\n".join(lines))


@authorized_only
@rate_limited
@reports_errors
async def add_client_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /add_client Nome | Telefone | E-mail (e-mail optional).

    Example:
        /add_client Maria Souza | +55 11 99999-0000 | maria@email.com
    """
    user = update.effective_user
    parts = split_fields(" ".join(context.args or []))
    if len(parts) < 2:
        await update.message.reply_text(
            "📝 Uso: /add_client Nome | Telefone | E-mail (opcional)\n"
            "Exemplo: /add_client Maria Souza | +55 11 99999-0000"
        )
        return

    # clients reference the tenant profile
    profile_repo.ensure_profile(user.id, user.full_name)
    client = client_service.add(user.id, parts[0], parts[1], parts[2] if len(parts) > 2 else None)
    await update.message.reply_text(f"✅ Cliente cadastrado: {client}")


@authorized_only
@rate_limited
@reports_errors
async def edit_client_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /edit_client <id> | Nome | Telefone | E-mail.
    Empty fields keep the current value.
    """
    user = update.effective_user
    parts = split_fields(" ".join(context.args or []))
    if len(parts) < 2:
        await update.message.reply_text(
            "📝 Uso: /edit_client <id> | Nome | Telefone | E-mail\n"
            "Deixe um campo vazio para mantê-lo."
        )
        return

    client_id = parse_id(parts[0], "ID do cliente")
    fields = (parts[1:] + [""] * 3)[:3]
    client = client_service.edit(
        client_id, user.id,
        name=fields[0] or None, phone=fields[1] or None, email=fields[2] or None,
    )
    await update.message.reply_text(f"✏️ Cliente atualizado: {client}")


@authorized_only
@rate_limited
@reports_errors
async def delete_client_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete_client <id> - permanently remove a client."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ Uso: /delete_client <id>")
        return

    client_id = parse_id(context.args[0], "ID do cliente")
    client_service.delete(client_id, user.id)
    await update.message.reply_text(f"🗑️ Cliente #{client_id} removido.")


@authorized_only
@rate_limited
@reports_errors
async def history_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /history <client_id> - full charge history, canceled included."""
    user = update.effective_user
    if not context.args:
        await update.message.reply_text("⚠️ Uso: /history <id do cliente>")
        return

    client_id = parse_id(context.args[0], "ID do cliente")
    summary = client_service.summary(client_id, user.id)
    charges = charge_service.client_history(client_id, user.id)

    totals = summary.totals
    last_payment = format_date(totals.last_payment_date) if totals.last_payment_date else "—"
    lines = [
        f"📜 Histórico de {summary.client.name}",
        f"Cobrado: {format_currency(totals.total_charged)} | Pago: {format_currency(totals.total_paid)}",
        f"Vencidas: {totals.overdue_count} | Último pagamento: {last_payment}\n",
    ]
    if not charges:
        lines.append("Nenhuma cobrança.")
    for c in charges:
        lines.append(f"#{c.id} {format_currency(c.amount)} - {format_date(c.due_date)} [{c.status_label}]")
    await update.message.reply_text("\n".join(lines))
