"""
repositories/notification_repo.py
---------------------------------
Data access layer for the append-only notifications log.
Rows are inserted and read, never updated.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable

from psycopg2 import extras

from db.connection import cursor
from models.notification import Notification
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "id, charge_id, client_id, user_id, notification_type, channel, "
    "message_content, sent_at, status"
)


class NotificationRepository:
    """Repository for the notifications table."""

    def add(self, notification: Notification) -> Notification:
        """Insert a single notification."""
        return self.add_many([notification])[0]

    def add_many(self, notifications: list[Notification]) -> list[Notification]:
        """
        Insert a batch of notifications in one statement.

        Returns:
            Copies of the notifications with their `id` populated, in order.

        Raises:
            UpstreamFailure: If the insert fails; nothing is written then.
        """
        if not notifications:
            return []
        sql = """
            INSERT INTO notifications
                (charge_id, client_id, user_id, notification_type, channel,
                 message_content, sent_at, status)
            VALUES %s
            RETURNING id;
        """
        rows = [
            (n.charge_id, n.client_id, n.user_id, n.notification_type, n.channel,
             n.message_content, n.sent_at, n.status)
            for n in notifications
        ]
        with cursor(f"insert {len(rows)} notifications") as cur:
            ids = extras.execute_values(cur, sql, rows, fetch=True)
        logger.info(f"Recorded {len(ids)} notifications")
        return [replace(n, id=row[0]) for n, row in zip(notifications, ids)]

    def get_recent(self, user_id: int, limit: int = 20) -> list[Notification]:
        """Latest notifications of a user, newest first."""
        sql = f"""
            SELECT {_COLUMNS} FROM notifications
            WHERE user_id = %s
            ORDER BY sent_at DESC, id DESC
            LIMIT %s;
        """
        with cursor("list notifications") as cur:
            cur.execute(sql, (user_id, limit))
            return [self._row_to_notification(r) for r in cur.fetchall()]

    def last_sent_at(self, charge_ids: Iterable[int], notification_type: str) -> dict[int, datetime]:
        """
        Most recent notification time per charge for one notification type.

        Returns:
            Mapping charge_id -> sent_at (charges never notified are absent).
        """
        ids = list(charge_ids)
        if not ids:
            return {}
        sql = """
            SELECT charge_id, MAX(sent_at) FROM notifications
            WHERE charge_id = ANY(%s) AND notification_type = %s
            GROUP BY charge_id;
        """
        with cursor("read last notification times") as cur:
            cur.execute(sql, (ids, notification_type))
            return {row[0]: row[1] for row in cur.fetchall()}

    def count_for_charge(self, charge_id: int) -> int:
        with cursor("count charge notifications") as cur:
            cur.execute("SELECT COUNT(*) FROM notifications WHERE charge_id = %s;", (charge_id,))
            return cur.fetchone()[0]

    @staticmethod
    def _row_to_notification(row: tuple) -> Notification:
        return Notification(
            id=row[0],
            charge_id=row[1],
            client_id=row[2],
            user_id=row[3],
            notification_type=row[4],
            channel=row[5],
            message_content=row[6],
            sent_at=row[7],
            status=row[8],
        )
