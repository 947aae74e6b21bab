"""
handlers/export_handler.py
---------------------------
Handles charge export commands (CSV, Excel).
Delegates to ExportService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from models.errors import UpstreamFailure
from services.export_service import ExportService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
export_service = ExportService()

EXPORTERS = {
    "csv": (export_service.export_csv, "csv", "CSV"),
    "excel": (export_service.export_excel, "xlsx", "Excel"),
}


def parse_period(args) -> tuple:
    """
    '/export_csv 2024 3' -> (2024, 3). No arguments exports every charge.

    Raises:
        ValueError: On non-numeric or out-of-range input.
    """
    if not args:
        return None, None
    if len(args) < 2:
        raise ValueError("year and month are both required")
    year, month = int(args[0]), int(args[1])
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    return year, month


async def _send_export(update: Update, context: ContextTypes.DEFAULT_TYPE, kind: str) -> None:
    export, extension, label = EXPORTERS[kind]
    user = update.effective_user

    try:
        year, month = parse_period(context.args)
    except ValueError:
        await update.message.reply_text(
            f"⚠️ Uso: /export_{kind} [ano mês]\nExemplo: /export_{kind} 2024 3"
        )
        return

    await update.message.reply_text(f"📄 Gerando arquivo {label}...")

    try:
        buffer = export(user.id, year, month)
    except UpstreamFailure as e:
        logger.error(f"{label} export failed for user {user.id}: {e}")
        await update.message.reply_text("❌ Não foi possível gerar o arquivo. Tente novamente.")
        return

    suffix = f"_{year}_{month:02d}" if year else ""
    period = f"{month:02d}/{year}" if year else "todas as cobranças"
    await update.message.reply_document(
        document=buffer,
        filename=f"cobrancas{suffix}.{extension}",
        caption=f"📊 Cobranças - {period} ({label})",
    )


@authorized_only
@rate_limited
async def export_csv_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /export_csv - send charges as CSV.
    Optional: /export_csv 2024 3 (charges due in March 2024).
    """
    await _send_export(update, context, "csv")


@authorized_only
@rate_limited
async def export_excel_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /export_excel - send charges as Excel with a summary sheet.
    Optional: /export_excel 2024 3 (charges due in March 2024).
    """
    await _send_export(update, context, "excel")
