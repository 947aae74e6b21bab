"""
repositories/profile_repo.py
----------------------------
Data access layer for tenant profiles.
"""

from typing import Optional

from db.connection import cursor
from utils.logger import get_logger

logger = get_logger(__name__)


class ProfileRepository:
    """Repository for the profiles table."""

    def ensure_profile(self, telegram_id: int, full_name: Optional[str] = None) -> dict:
        """
        Insert a profile if it doesn't exist, or return the existing record.
        Uses PostgreSQL's ON CONFLICT (upsert) for atomicity.

        Args:
            telegram_id: The Telegram user ID (tenant ID).
            full_name: Optional display name from Telegram.

        Returns:
            Dict with profile data: {'id', 'telegram_id', 'full_name', 'phone', 'pix_key'}.
        """
        sql = """
            INSERT INTO profiles (telegram_id, full_name)
            VALUES (%s, %s)
            ON CONFLICT (telegram_id) DO UPDATE
                SET full_name = COALESCE(EXCLUDED.full_name, profiles.full_name)
            RETURNING id, telegram_id, full_name, phone, pix_key;
        """
        with cursor(f"ensure profile {telegram_id}") as cur:
            cur.execute(sql, (telegram_id, full_name))
            return self._row_to_dict(cur.fetchone())

    def get_by_telegram_id(self, telegram_id: int) -> Optional[dict]:
        """
        Fetch a profile by Telegram ID.

        Returns:
            Profile dict or None.
        """
        sql = """
            SELECT id, telegram_id, full_name, phone, pix_key
            FROM profiles WHERE telegram_id = %s;
        """
        with cursor("fetch profile") as cur:
            cur.execute(sql, (telegram_id,))
            row = cur.fetchone()
        return self._row_to_dict(row) if row else None

    def update_contact(self, telegram_id: int, phone: Optional[str], pix_key: Optional[str]) -> bool:
        """Store the tenant's own phone and PIX key."""
        sql = "UPDATE profiles SET phone = %s, pix_key = %s WHERE telegram_id = %s;"
        with cursor("update profile") as cur:
            cur.execute(sql, (phone, pix_key, telegram_id))
            return cur.rowcount > 0

    @staticmethod
    def _row_to_dict(row: tuple) -> dict:
        return {
            "id": row[0],
            "telegram_id": row[1],
            "full_name": row[2],
            "phone": row[3],
            "pix_key": row[4],
        }
