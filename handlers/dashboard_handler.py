"""
handlers/dashboard_handler.py
-----------------------------
Handles /dashboard and /notifications.
"""

from telegram import Update
from telegram.ext import ContextTypes

from models.notification import TYPE_OVERDUE, TYPE_PAYMENT_CONFIRMED, TYPE_REMINDER
from repositories.notification_repo import NotificationRepository
from services.dashboard_service import DashboardService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from handlers.common import reports_errors
from utils.logger import get_logger

logger = get_logger(__name__)
dashboard_service = DashboardService()
notification_repo = NotificationRepository()

TYPE_ICONS = {
    TYPE_REMINDER: "🔔",
    TYPE_OVERDUE: "⚠️",
    TYPE_PAYMENT_CONFIRMED: "✅",
}
HISTORY_LIMIT = 10


@authorized_only
@rate_limited
@reports_errors
async def dashboard_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /dashboard - counts and amounts over active charges."""
    user = update.effective_user
    await update.message.reply_text(dashboard_service.render(user.id), parse_mode="Markdown")


@authorized_only
@rate_limited
@reports_errors
async def notifications_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /notifications - the latest messages sent to clients."""
    user = update.effective_user
    recent = notification_repo.get_recent(user.id, limit=HISTORY_LIMIT)
    if not recent:
        await update.message.reply_text("📭 Nenhuma notificação enviada ainda.")
        return

    lines = ["📨 Últimas notificações:\n"]
    for n in recent:
        icon = TYPE_ICONS.get(n.notification_type, "•")
        lines.append(
            f"{icon} {n.sent_at:%d/%m %H:%M} - cobrança #{n.charge_id}\n   {n.message_content}"
        )
    await update.message.reply_text("\n".join(lines))
