"""
repositories/client_repo.py
---------------------------
Data access layer for clients.
"""

from typing import Iterable, Optional

from db.connection import cursor
from models.client import Client
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = "id, user_id, name, phone, email, created_at"


class ClientRepository:
    """Repository for CRUD operations on the clients table."""

    def add(self, client: Client) -> Client:
        """
        Insert a new client.

        Returns:
            The same object with its `id` and `created_at` populated.
        """
        sql = """
            INSERT INTO clients (user_id, name, phone, email)
            VALUES (%s, %s, %s, %s)
            RETURNING id, created_at;
        """
        with cursor("add client") as cur:
            cur.execute(sql, (client.user_id, client.name, client.phone, client.email))
            client.id, client.created_at = cur.fetchone()
        logger.info(f"Added client #{client.id} for user {client.user_id}")
        return client

    def get_by_id(self, client_id: int, user_id: Optional[int] = None) -> Optional[Client]:
        """Fetch a client by ID, optionally scoped to a user."""
        sql = f"SELECT {_COLUMNS} FROM clients WHERE id = %s"
        params: list = [client_id]
        if user_id is not None:
            sql += " AND user_id = %s"
            params.append(user_id)
        with cursor("fetch client") as cur:
            cur.execute(sql + ";", params)
            row = cur.fetchone()
        return self._row_to_client(row) if row else None

    def get_many(self, client_ids: Iterable[int]) -> dict[int, Client]:
        """Fetch several clients at once, keyed by ID."""
        ids = list(set(client_ids))
        if not ids:
            return {}
        sql = f"SELECT {_COLUMNS} FROM clients WHERE id = ANY(%s);"
        with cursor("fetch clients") as cur:
            cur.execute(sql, (ids,))
            return {row[0]: self._row_to_client(row) for row in cur.fetchall()}

    def get_all(self, user_id: int) -> list[Client]:
        """All clients of a user, alphabetically."""
        sql = f"SELECT {_COLUMNS} FROM clients WHERE user_id = %s ORDER BY name ASC;"
        with cursor("list clients") as cur:
            cur.execute(sql, (user_id,))
            return [self._row_to_client(r) for r in cur.fetchall()]

    def update(self, client: Client) -> bool:
        """Update name/phone/email of a client, scoped to its user."""
        sql = """
            UPDATE clients SET name = %s, phone = %s, email = %s
            WHERE id = %s AND user_id = %s;
        """
        with cursor(f"update client #{client.id}") as cur:
            cur.execute(sql, (client.name, client.phone, client.email, client.id, client.user_id))
            return cur.rowcount > 0

    def count_charges(self, client_id: int) -> int:
        """Number of charges (any state) referencing the client."""
        with cursor("count client charges") as cur:
            cur.execute("SELECT COUNT(*) FROM charges WHERE client_id = %s;", (client_id,))
            return cur.fetchone()[0]

    def delete(self, client_id: int, user_id: int) -> bool:
        """Permanently delete a client (its charges cascade)."""
        sql = "DELETE FROM clients WHERE id = %s AND user_id = %s;"
        with cursor(f"delete client #{client_id}") as cur:
            cur.execute(sql, (client_id, user_id))
            deleted = cur.rowcount > 0
        if deleted:
            logger.info(f"Deleted client #{client_id}")
        return deleted

    @staticmethod
    def _row_to_client(row: tuple) -> Client:
        """Convert a database row tuple to a Client domain object."""
        return Client(
            id=row[0],
            user_id=row[1],
            name=row[2],
            phone=row[3],
            email=row[4],
            created_at=row[5],
        )
