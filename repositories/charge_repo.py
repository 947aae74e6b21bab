"""
repositories/charge_repo.py
---------------------------
Data access layer for charges.
All SQL queries related to the `charges` table live here.

State-changing updates carry their transition guard in the WHERE clause, so
a write that lost a race (e.g. cancel vs. payment) affects zero rows instead
of overwriting a terminal state.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from db.connection import cursor
from models.charge import Charge
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = """
    id, user_id, client_id, amount, due_date, status, is_canceled, paid_at,
    notes, payment_link, is_recurrent, recurrence_interval, recurrence_day,
    next_charge_date, parent_charge_id, last_notification_sent_at,
    successor_spawned_at, created_at, updated_at
"""


class ChargeRepository:
    """Repository for CRUD operations on the charges table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, charge: Charge) -> Charge:
        """
        Insert a new charge.

        Args:
            charge: The Charge to persist.

        Returns:
            The same object with `id`, `created_at` and `updated_at` populated.
        """
        sql = """
            INSERT INTO charges
                (user_id, client_id, amount, due_date, status, is_canceled, notes,
                 payment_link, is_recurrent, recurrence_interval, recurrence_day,
                 next_charge_date, parent_charge_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at, updated_at;
        """
        with cursor("add charge") as cur:
            cur.execute(sql, self._insert_params(charge))
            charge.id, charge.created_at, charge.updated_at = cur.fetchone()
        logger.info(f"Added charge #{charge.id} for client {charge.client_id}")
        return charge

    def add_successor(self, charge: Charge) -> Optional[Charge]:
        """
        Insert the successor of a recurring charge and stamp the parent's
        successor_spawned_at in the same transaction.

        Returns:
            The persisted charge, or None if the parent already has a
            successor (unique index on parent_charge_id) or spawned one
            that was later deleted.
        """
        claim_sql = """
            UPDATE charges SET successor_spawned_at = NOW(), updated_at = NOW()
            WHERE id = %s AND successor_spawned_at IS NULL;
        """
        insert_sql = """
            INSERT INTO charges
                (user_id, client_id, amount, due_date, status, is_canceled, notes,
                 payment_link, is_recurrent, recurrence_interval, recurrence_day,
                 next_charge_date, parent_charge_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (parent_charge_id) WHERE parent_charge_id IS NOT NULL DO NOTHING
            RETURNING id, created_at, updated_at;
        """
        with cursor("add successor charge") as cur:
            cur.execute(claim_sql, (charge.parent_charge_id,))
            row = None
            if cur.rowcount > 0:
                cur.execute(insert_sql, self._insert_params(charge))
                row = cur.fetchone()
        if row is None:
            logger.info(f"Charge #{charge.parent_charge_id} already spawned its successor")
            return None
        charge.id, charge.created_at, charge.updated_at = row
        logger.info(
            f"Spawned charge #{charge.id} (due {charge.due_date}) "
            f"from recurring #{charge.parent_charge_id}"
        )
        return charge

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, charge_id: int, user_id: Optional[int] = None) -> Optional[Charge]:
        """Fetch a single charge by ID, optionally scoped to a user."""
        sql = f"SELECT {_COLUMNS} FROM charges WHERE id = %s"
        params: list = [charge_id]
        if user_id is not None:
            sql += " AND user_id = %s"
            params.append(user_id)
        with cursor("fetch charge") as cur:
            cur.execute(sql + ";", params)
            row = cur.fetchone()
        return self._row_to_charge(row) if row else None

    def get_all(
        self, user_id: int, status: Optional[str] = None, include_canceled: bool = False
    ) -> list[Charge]:
        """
        Get a user's charges, newest due date first.

        Args:
            user_id: Tenant ID.
            status: Optional status filter.
            include_canceled: If False, only active charges are returned.
        """
        sql = f"SELECT {_COLUMNS} FROM charges WHERE user_id = %s"
        params: list = [user_id]
        if status:
            sql += " AND status = %s"
            params.append(status)
        if not include_canceled:
            sql += " AND is_canceled = FALSE"
        sql += " ORDER BY due_date DESC, id DESC;"
        with cursor("list charges") as cur:
            cur.execute(sql, params)
            return [self._row_to_charge(r) for r in cur.fetchall()]

    def get_by_client(self, client_id: int, user_id: int) -> list[Charge]:
        """Full history of a client's charges, canceled ones included."""
        sql = f"""
            SELECT {_COLUMNS} FROM charges
            WHERE client_id = %s AND user_id = %s
            ORDER BY created_at DESC, id DESC;
        """
        with cursor("list client charges") as cur:
            cur.execute(sql, (client_id, user_id))
            return [self._row_to_charge(r) for r in cur.fetchall()]

    def get_active(self) -> list[Charge]:
        """All non-canceled pending/overdue charges across tenants (sweep scan)."""
        sql = f"""
            SELECT {_COLUMNS} FROM charges
            WHERE is_canceled = FALSE AND status IN ('pending', 'overdue')
            ORDER BY due_date ASC, id ASC;
        """
        with cursor("scan active charges") as cur:
            cur.execute(sql)
            return [self._row_to_charge(r) for r in cur.fetchall()]

    def get_paid_recurrent_without_successor(self) -> list[Charge]:
        """Paid recurring charges that never spawned a successor."""
        sql = f"""
            SELECT {_COLUMNS} FROM charges c
            WHERE c.status = 'paid' AND c.is_canceled = FALSE AND c.is_recurrent = TRUE
              AND c.successor_spawned_at IS NULL
              AND NOT EXISTS (SELECT 1 FROM charges s WHERE s.parent_charge_id = c.id)
            ORDER BY c.id ASC;
        """
        with cursor("scan orphaned recurring charges") as cur:
            cur.execute(sql)
            return [self._row_to_charge(r) for r in cur.fetchall()]

    # ── UPDATE ────────────────────────────────────────────

    def update(self, charge: Charge) -> bool:
        """
        Persist user edits. Only open (unpaid, non-canceled) charges are
        written.

        Returns:
            True if a row was updated.
        """
        sql = """
            UPDATE charges
            SET amount = %s, due_date = %s, status = %s, notes = %s, payment_link = %s,
                is_recurrent = %s, recurrence_interval = %s, recurrence_day = %s,
                next_charge_date = %s, last_notification_sent_at = %s, updated_at = NOW()
            WHERE id = %s AND user_id = %s AND status <> 'paid' AND is_canceled = FALSE;
        """
        with cursor(f"update charge #{charge.id}") as cur:
            cur.execute(sql, (
                charge.amount, charge.due_date, charge.status, charge.notes,
                charge.payment_link, charge.is_recurrent, charge.recurrence_interval,
                charge.recurrence_day, charge.next_charge_date,
                charge.last_notification_sent_at, charge.id, charge.user_id,
            ))
            return cur.rowcount > 0

    def mark_overdue(self, charge_id: int, today: date) -> bool:
        """Promote one pending, past-due, active charge to overdue."""
        sql = """
            UPDATE charges SET status = 'overdue', updated_at = NOW()
            WHERE id = %s AND status = 'pending' AND is_canceled = FALSE AND due_date < %s;
        """
        with cursor(f"mark charge #{charge_id} overdue") as cur:
            cur.execute(sql, (charge_id, today))
            return cur.rowcount > 0

    def mark_paid(self, charge_id: int, paid_at: datetime) -> bool:
        """Record a payment on a pending/overdue, non-canceled charge."""
        sql = """
            UPDATE charges SET status = 'paid', paid_at = %s, updated_at = NOW()
            WHERE id = %s AND status IN ('pending', 'overdue') AND is_canceled = FALSE;
        """
        with cursor(f"mark charge #{charge_id} paid") as cur:
            cur.execute(sql, (paid_at, charge_id))
            updated = cur.rowcount > 0
        if updated:
            logger.info(f"Charge #{charge_id} marked paid at {paid_at.isoformat()}")
        return updated

    def cancel(self, charge_id: int, user_id: int) -> bool:
        """Soft-delete an unpaid charge."""
        sql = """
            UPDATE charges SET is_canceled = TRUE, updated_at = NOW()
            WHERE id = %s AND user_id = %s AND status <> 'paid' AND is_canceled = FALSE;
        """
        with cursor(f"cancel charge #{charge_id}") as cur:
            cur.execute(sql, (charge_id, user_id))
            canceled = cur.rowcount > 0
        if canceled:
            logger.info(f"Canceled charge #{charge_id}")
        return canceled

    def stamp_notification(self, charge_ids: Iterable[int], sent_at: datetime) -> int:
        """
        Set last_notification_sent_at on charges not stamped yet.

        Returns:
            Number of charges stamped.
        """
        ids = list(charge_ids)
        if not ids:
            return 0
        sql = """
            UPDATE charges SET last_notification_sent_at = %s, updated_at = NOW()
            WHERE id = ANY(%s) AND last_notification_sent_at IS NULL;
        """
        with cursor("stamp reminder notifications") as cur:
            cur.execute(sql, (sent_at, ids))
            return cur.rowcount

    def run_overdue_procedure(self) -> None:
        """Invoke the update_overdue_charges() stored procedure."""
        with cursor("run update_overdue_charges") as cur:
            cur.execute("SELECT update_overdue_charges();")

    # ── DELETE ────────────────────────────────────────────

    def delete(self, charge_id: int, user_id: int) -> bool:
        """Permanently delete a charge by ID, scoped to user."""
        sql = "DELETE FROM charges WHERE id = %s AND user_id = %s;"
        with cursor(f"delete charge #{charge_id}") as cur:
            cur.execute(sql, (charge_id, user_id))
            deleted = cur.rowcount > 0
        if deleted:
            logger.info(f"Deleted charge #{charge_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _insert_params(charge: Charge) -> tuple:
        return (
            charge.user_id, charge.client_id, charge.amount, charge.due_date,
            charge.status, charge.is_canceled, charge.notes, charge.payment_link,
            charge.is_recurrent, charge.recurrence_interval, charge.recurrence_day,
            charge.next_charge_date, charge.parent_charge_id,
        )

    @staticmethod
    def _row_to_charge(row: tuple) -> Charge:
        """Convert a database row tuple to a Charge domain object."""
        return Charge(
            id=row[0],
            user_id=row[1],
            client_id=row[2],
            amount=Decimal(row[3]),
            due_date=row[4],
            status=row[5],
            is_canceled=row[6],
            paid_at=row[7],
            notes=row[8],
            payment_link=row[9],
            is_recurrent=bool(row[10]),
            recurrence_interval=row[11],
            recurrence_day=row[12],
            next_charge_date=row[13],
            parent_charge_id=row[14],
            last_notification_sent_at=row[15],
            successor_spawned_at=row[16],
            created_at=row[17],
            updated_at=row[18],
        )
