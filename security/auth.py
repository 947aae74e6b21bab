"""
security/auth.py
-----------------
Authentication middleware for the Telegram bot.
Each Telegram account is one tenant; only whitelisted accounts may
manage clients and charges.
"""

from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes

from config import ADMIN_USER_IDS, ALLOWED_USER_IDS
from utils.logger import get_logger

logger = get_logger(__name__)


def is_allowed(user_id: int) -> bool:
    """An empty whitelist allows everyone (dev mode)."""
    return not ALLOWED_USER_IDS or user_id in ALLOWED_USER_IDS


def authorized_only(func: Callable):
    """
    Decorator that restricts a handler to whitelisted tenants only.

    Usage:
        @authorized_only
        async def my_handler(update, context):
            ...

    Unauthorized attempts are logged and answered with a refusal.
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not is_allowed(user.id):
            logger.warning(
                f"🚫 Unauthorized access attempt: user_id={user.id}, "
                f"username={user.username}"
            )
            await update.message.reply_text(
                "⛔ Acesso não autorizado. Peça ao administrador para liberar sua conta."
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper


def admin_only(func: Callable):
    """
    Decorator for administrative commands (hard deletes). Applied inside
    @authorized_only; only ADMIN_USER_IDS pass.
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if user.id not in ADMIN_USER_IDS:
            logger.warning(f"🚫 Non-admin {user.id} tried {func.__name__}")
            await update.message.reply_text(
                "⛔ Apenas administradores podem excluir cobranças. Use /cancel\\_charge.",
                parse_mode="Markdown",
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
