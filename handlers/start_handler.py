"""
handlers/start_handler.py
--------------------------
Handles /start, /help, /myid and /profile.
Registers the tenant profile and shows available commands.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import reports_errors, split_fields
from models.errors import InvalidArgument
from repositories.profile_repo import ProfileRepository
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
profile_repo = ProfileRepository()

HELP_TEXT = """
🤖 *PingPague*
Cobranças e lembretes automáticos pelo WhatsApp 💸

*👥 Clientes:*
/clients - listar clientes e totais
/add\\_client Nome | Telefone | E-mail
/edit\\_client id | Nome | Telefone | E-mail
/delete\\_client id
/history id - histórico de cobranças do cliente

*🧾 Cobranças:*
/charges [pendentes|pagas|vencidas]
/add\\_charge cliente | valor | vencimento | recorrência | obs
/edit\\_charge id valor:150 vencimento:01/03/2024 obs:texto
/pay id - confirmar pagamento
/cancel\\_charge id
/delete\\_charge id - exclusão definitiva (admin)

*📊 Relatórios:*
/dashboard - visão geral
/notifications - últimas notificações
/export\\_csv [ano mês]
/export\\_excel [ano mês]

*⚙️ Conta:*
/profile Telefone | Chave PIX
/myid - seu Telegram ID
"""


@authorized_only
@rate_limited
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - register the tenant and show welcome message."""
    user = update.effective_user
    profile_repo.ensure_profile(user.id, user.full_name)
    logger.info(f"User {user.id} ({user.first_name}) started the bot.")

    await update.message.reply_text(
        f"Olá {user.first_name}! 👋\n"
        f"Eu cuido das suas cobranças: lembro seus clientes antes do vencimento "
        f"e aviso quando algo atrasar.\n\n"
        f"Comece com /add\\_client e depois /add\\_charge.\n"
        f"Digite /help para ver todos os comandos.",
        parse_mode="Markdown",
    )


@authorized_only
@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.message.reply_text(HELP_TEXT, parse_mode="Markdown")


@authorized_only
async def myid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myid command - show user's Telegram ID for whitelisting."""
    user = update.effective_user
    await update.message.reply_text(
        f"🆔 Seu ID: `{user.id}`\n"
        f"Adicione-o em `ALLOWED_USER_IDS` no arquivo `.env` para proteger o bot.",
        parse_mode="Markdown",
    )


@authorized_only
@rate_limited
@reports_errors
async def profile_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /profile - show the tenant profile, or update it with
    /profile Telefone | Chave PIX.
    """
    user = update.effective_user
    profile = profile_repo.ensure_profile(user.id, user.full_name)

    if not context.args:
        await update.message.reply_text(
            f"👤 {profile['full_name'] or user.first_name}\n"
            f"📱 Telefone: {profile['phone'] or '—'}\n"
            f"🔑 Chave PIX: {profile['pix_key'] or '—'}\n\n"
            f"Para alterar: /profile Telefone | Chave PIX"
        )
        return

    parts = split_fields(" ".join(context.args))
    if len(parts) != 2:
        raise InvalidArgument("Uso: /profile Telefone | Chave PIX")
    profile_repo.update_contact(user.id, parts[0] or None, parts[1] or None)
    logger.info(f"User {user.id} updated profile contact")
    await update.message.reply_text("✅ Perfil atualizado.")
