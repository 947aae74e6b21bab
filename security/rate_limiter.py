"""
security/rate_limiter.py
-------------------------
Per-tenant rate limiting for bot commands.
Limits the number of commands a user can send within a sliding window.
"""

import time
from collections import defaultdict, deque
from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes

from config import RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)

# {user_id: deque([timestamp, ...])}, oldest first
_user_timestamps: dict[int, deque] = defaultdict(deque)


def allow(user_id: int, now: float | None = None) -> bool:
    """
    Record one command for the user if the window still has room.

    Returns:
        False when the user already sent RATE_LIMIT_MESSAGES commands
        within the last RATE_LIMIT_WINDOW_SECONDS.
    """
    now = time.time() if now is None else now
    stamps = _user_timestamps[user_id]
    cutoff = now - RATE_LIMIT_WINDOW_SECONDS
    while stamps and stamps[0] <= cutoff:
        stamps.popleft()
    if len(stamps) >= RATE_LIMIT_MESSAGES:
        return False
    stamps.append(now)
    return True


def rate_limited(func: Callable):
    """
    Decorator that enforces rate limiting per user.

    Configuration (via .env):
        RATE_LIMIT_MESSAGES: Max commands per window (default: 30).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not allow(user.id):
            logger.warning(f"⚠️ Rate limit hit for user {user.id}")
            await update.message.reply_text(
                "⚠️ Muitos comandos em pouco tempo. Aguarde um pouco e tente novamente."
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
