"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ── Telegram ──────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "pingpague")
DB_USER: str = os.getenv("DB_USER", "pingpague_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# ── Security ──────────────────────────────────────────────
_raw_ids = os.getenv("ALLOWED_USER_IDS", "")
ALLOWED_USER_IDS: list[int] = (
    [int(uid.strip()) for uid in _raw_ids.split(",") if uid.strip()]
    if _raw_ids
    else []
)

# Accounts allowed to hard-delete charges (empty = nobody)
_raw_admins = os.getenv("ADMIN_USER_IDS", "")
ADMIN_USER_IDS: list[int] = [int(uid.strip()) for uid in _raw_admins.split(",") if uid.strip()]

# Shared secret expected in the X-Webhook-Secret header (empty = not checked)
WEBHOOK_SECRET: str = os.getenv("WEBHOOK_SECRET", "")

# ── Rate Limiting ─────────────────────────────────────────
RATE_LIMIT_MESSAGES: int = int(os.getenv("RATE_LIMIT_MESSAGES", "30"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Currency / locale ─────────────────────────────────────
CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "R$")
DATE_DISPLAY_FORMAT: str = "%d/%m/%Y"

# ── Sweep (overdue + reminders) ───────────────────────────
REMINDER_DAYS_AHEAD: int = int(os.getenv("REMINDER_DAYS_AHEAD", "2"))
# 0 disables throttling: every sweep re-alerts every overdue charge
OVERDUE_ALERT_INTERVAL_HOURS: int = int(os.getenv("OVERDUE_ALERT_INTERVAL_HOURS", "0"))
USE_OVERDUE_PROCEDURE: bool = _flag("USE_OVERDUE_PROCEDURE", "true")
SWEEP_HOUR: int = int(os.getenv("SWEEP_HOUR", "9"))
SWEEP_MINUTE: int = int(os.getenv("SWEEP_MINUTE", "0"))

# ── Deletion policy ───────────────────────────────────────
HARD_DELETE_CASCADE: bool = _flag("HARD_DELETE_CASCADE", "false")

# ── WhatsApp (Meta Graph API) ─────────────────────────────
WHATSAPP_TOKEN: str = os.getenv("WHATSAPP_TOKEN", "")
WHATSAPP_PHONE_ID: str = os.getenv("WHATSAPP_PHONE_ID", "")
WHATSAPP_API_VERSION: str = os.getenv("WHATSAPP_API_VERSION", "v24.0")

# ── HTTP API ──────────────────────────────────────────────
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
