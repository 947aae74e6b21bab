"""
main.py
-------
Entry point for the PingPague Telegram bot.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Configure and start the Telegram bot with all handlers.
    - Schedule the daily overdue/reminder sweep.
"""

import asyncio
from datetime import time as dt_time, timezone

from telegram import BotCommand
from telegram.ext import Application, CommandHandler

from config import ADMIN_USER_IDS, SWEEP_HOUR, SWEEP_MINUTE, TELEGRAM_BOT_TOKEN
from db.connection import init_pool, close_pool
from db.init_db import create_tables
from handlers.start_handler import start_command, help_command, myid_command, profile_command
from handlers.client_handler import (
    clients_command,
    add_client_command,
    edit_client_command,
    delete_client_command,
    history_command,
)
from handlers.charge_handler import (
    charges_command,
    add_charge_command,
    edit_charge_command,
    cancel_charge_command,
    pay_command,
    delete_charge_command,
)
from handlers.dashboard_handler import dashboard_command, notifications_command
from handlers.export_handler import export_csv_command, export_excel_command
from services.sweep_service import SweepService
from utils.logger import get_logger

logger = get_logger(__name__)

COMMANDS = {
    "start": start_command,
    "help": help_command,
    "myid": myid_command,
    "profile": profile_command,
    "clients": clients_command,
    "add_client": add_client_command,
    "edit_client": edit_client_command,
    "delete_client": delete_client_command,
    "history": history_command,
    "charges": charges_command,
    "add_charge": add_charge_command,
    "edit_charge": edit_charge_command,
    "cancel_charge": cancel_charge_command,
    "pay": pay_command,
    "delete_charge": delete_charge_command,
    "dashboard": dashboard_command,
    "notifications": notifications_command,
    "export_csv": export_csv_command,
    "export_excel": export_excel_command,
}


def sweep_summary(result) -> str:
    """Operator message for one sweep run (figures cover every tenant)."""
    return (
        f"⏰ Rotina diária concluída\n"
        f"⚠️ Marcadas como vencidas: {result.charges_marked_overdue}\n"
        f"🔔 Lembretes: {result.reminders_sent}\n"
        f"📨 Alertas de atraso: {result.overdue_alerts}\n"
        f"🔁 Recorrências geradas: {result.successors_spawned}"
    )


async def run_sweep(context) -> None:
    """
    Scheduled job: promote overdue charges, send reminders and overdue alerts.
    Runs daily at SWEEP_HOUR:SWEEP_MINUTE (UTC). The summary goes to
    ADMIN_USER_IDS only.
    """
    try:
        # The sweep does blocking database and HTTP work
        result = await asyncio.to_thread(SweepService().run)
    except Exception as e:
        logger.error(f"Daily sweep failed: {e}")
        return

    summary = sweep_summary(result)
    for user_id in ADMIN_USER_IDS:
        try:
            await context.bot.send_message(chat_id=user_id, text=summary)
        except Exception as e:
            logger.error(f"Failed to send sweep summary to {user_id}: {e}")


async def set_bot_commands(application: Application) -> None:
    """Register bot commands menu in Telegram on startup."""
    commands = [
        BotCommand("start", "🚀 Iniciar"),
        BotCommand("help", "📖 Ajuda"),
        BotCommand("clients", "👥 Clientes"),
        BotCommand("add_client", "➕ Novo cliente"),
        BotCommand("history", "📜 Histórico do cliente"),
        BotCommand("charges", "🧾 Cobranças"),
        BotCommand("add_charge", "➕ Nova cobrança"),
        BotCommand("edit_charge", "✏️ Editar cobrança"),
        BotCommand("pay", "✅ Confirmar pagamento"),
        BotCommand("cancel_charge", "🚫 Cancelar cobrança"),
        BotCommand("dashboard", "📊 Visão geral"),
        BotCommand("notifications", "📨 Notificações"),
        BotCommand("export_csv", "📄 Exportar CSV"),
        BotCommand("export_excel", "📊 Exportar Excel"),
        BotCommand("profile", "👤 Perfil"),
        BotCommand("myid", "🆔 Seu ID"),
    ]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands menu registered successfully.")


def main() -> None:
    """Initialize and run the bot."""

    # ── 1. Database setup ─────────────────────────────────
    logger.info("Initializing database...")
    init_pool()
    create_tables()

    # ── 2. Build the Telegram application ─────────────────
    logger.info("Starting Telegram bot...")
    app = Application.builder().token(TELEGRAM_BOT_TOKEN).post_init(set_bot_commands).build()

    # ── 3. Register command handlers ──────────────────────
    for name, callback in COMMANDS.items():
        app.add_handler(CommandHandler(name, callback))

    # ── 4. Schedule the sweep ─────────────────────────────
    job_queue = app.job_queue
    if job_queue:
        job_queue.run_daily(
            run_sweep,
            time=dt_time(hour=SWEEP_HOUR, minute=SWEEP_MINUTE, tzinfo=timezone.utc),
            name="daily_sweep",
        )
        logger.info(f"Scheduled daily sweep ({SWEEP_HOUR:02d}:{SWEEP_MINUTE:02d} UTC)")

    # ── 5. Start polling ──────────────────────────────────
    logger.info("🚀 PingPague is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])

    # ── 6. Cleanup on shutdown ────────────────────────────
    close_pool()
    logger.info("PingPague stopped.")


if __name__ == "__main__":
    main()
