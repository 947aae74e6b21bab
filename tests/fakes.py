"""
In-memory stand-ins for the repositories and the WhatsApp notifier.

They mirror the guarded SQL of the real repositories (status conditions on
updates, unique parent_charge_id, the successor_spawned_at claim,
stamp-only-if-null) and hand out copies so services cannot mutate stored
rows without going through an update.
"""

from dataclasses import replace
from datetime import datetime, timezone
from itertools import count

from models.charge import STATUS_OVERDUE, STATUS_PAID, STATUS_PENDING
from models.errors import UpstreamFailure

USER_ID = 111


class FakeChargeRepository:
    def __init__(self):
        self.rows = {}
        self._ids = count(1)
        self.fail_add_successor = False

    def _store(self, charge):
        charge.id = next(self._ids)
        charge.created_at = charge.updated_at = datetime.now(timezone.utc)
        self.rows[charge.id] = replace(charge)
        return charge

    def add(self, charge):
        return self._store(charge)

    def add_successor(self, charge):
        if self.fail_add_successor:
            raise UpstreamFailure("insert successor failed")
        parent = self.rows.get(charge.parent_charge_id)
        if parent is None or parent.successor_spawned_at is not None:
            return None
        parent.successor_spawned_at = datetime.now(timezone.utc)
        if any(c.parent_charge_id == charge.parent_charge_id for c in self.rows.values()):
            return None
        return self._store(charge)

    def get_by_id(self, charge_id, user_id=None):
        row = self.rows.get(charge_id)
        if row is None or (user_id is not None and row.user_id != user_id):
            return None
        return replace(row)

    def get_all(self, user_id, status=None, include_canceled=False):
        rows = [
            c for c in self.rows.values()
            if c.user_id == user_id
            and (status is None or c.status == status)
            and (include_canceled or not c.is_canceled)
        ]
        return [replace(c) for c in sorted(rows, key=lambda c: (c.due_date, c.id), reverse=True)]

    def get_by_client(self, client_id, user_id):
        return [
            replace(c) for c in self.rows.values()
            if c.client_id == client_id and c.user_id == user_id
        ]

    def get_active(self):
        return [
            replace(c) for c in self.rows.values()
            if not c.is_canceled and c.status in (STATUS_PENDING, STATUS_OVERDUE)
        ]

    def get_paid_recurrent_without_successor(self):
        parents = {c.parent_charge_id for c in self.rows.values()}
        return [
            replace(c) for c in self.rows.values()
            if c.status == STATUS_PAID and not c.is_canceled and c.is_recurrent
            and c.successor_spawned_at is None and c.id not in parents
        ]

    def update(self, charge):
        row = self.rows.get(charge.id)
        if row is None or row.user_id != charge.user_id or row.status == STATUS_PAID or row.is_canceled:
            return False
        self.rows[charge.id] = replace(charge, is_canceled=row.is_canceled, paid_at=row.paid_at)
        return True

    def mark_overdue(self, charge_id, today):
        row = self.rows.get(charge_id)
        if row is None or row.status != STATUS_PENDING or row.is_canceled or not row.due_date < today:
            return False
        row.status = STATUS_OVERDUE
        return True

    def mark_paid(self, charge_id, paid_at):
        row = self.rows.get(charge_id)
        if row is None or row.status == STATUS_PAID or row.is_canceled:
            return False
        row.status = STATUS_PAID
        row.paid_at = paid_at
        return True

    def cancel(self, charge_id, user_id):
        row = self.rows.get(charge_id)
        if row is None or row.user_id != user_id or row.status == STATUS_PAID or row.is_canceled:
            return False
        row.is_canceled = True
        return True

    def stamp_notification(self, charge_ids, sent_at):
        stamped = 0
        for charge_id in charge_ids:
            row = self.rows.get(charge_id)
            if row is not None and row.last_notification_sent_at is None:
                row.last_notification_sent_at = sent_at
                stamped += 1
        return stamped

    def run_overdue_procedure(self):
        pass

    def delete(self, charge_id, user_id):
        row = self.rows.get(charge_id)
        if row is None or row.user_id != user_id:
            return False
        del self.rows[charge_id]
        return True


class FakeClientRepository:
    def __init__(self, charges=None):
        self.rows = {}
        self._ids = count(1)
        self.charges = charges

    def add(self, client):
        client.id = next(self._ids)
        client.created_at = datetime.now(timezone.utc)
        self.rows[client.id] = replace(client)
        return client

    def get_by_id(self, client_id, user_id=None):
        row = self.rows.get(client_id)
        if row is None or (user_id is not None and row.user_id != user_id):
            return None
        return replace(row)

    def get_many(self, client_ids):
        return {i: replace(self.rows[i]) for i in set(client_ids) if i in self.rows}

    def get_all(self, user_id):
        return sorted(
            (replace(c) for c in self.rows.values() if c.user_id == user_id),
            key=lambda c: c.name,
        )

    def update(self, client):
        row = self.rows.get(client.id)
        if row is None or row.user_id != client.user_id:
            return False
        self.rows[client.id] = replace(client)
        return True

    def count_charges(self, client_id):
        if self.charges is None:
            return 0
        return sum(1 for c in self.charges.rows.values() if c.client_id == client_id)

    def delete(self, client_id, user_id):
        row = self.rows.get(client_id)
        if row is None or row.user_id != user_id:
            return False
        del self.rows[client_id]
        return True


class FakeNotificationRepository:
    def __init__(self):
        self.rows = []
        self._ids = count(1)
        self.fail_next_add = False

    def add(self, notification):
        return self.add_many([notification])[0]

    def add_many(self, notifications):
        if self.fail_next_add:
            self.fail_next_add = False
            raise UpstreamFailure("insert notifications failed")
        recorded = [replace(n, id=next(self._ids)) for n in notifications]
        self.rows.extend(recorded)
        return recorded

    def get_recent(self, user_id, limit=20):
        rows = [n for n in self.rows if n.user_id == user_id]
        return sorted(rows, key=lambda n: (n.sent_at, n.id), reverse=True)[:limit]

    def last_sent_at(self, charge_ids, notification_type):
        wanted = set(charge_ids)
        latest = {}
        for n in self.rows:
            if n.charge_id in wanted and n.notification_type == notification_type:
                if n.charge_id not in latest or n.sent_at > latest[n.charge_id]:
                    latest[n.charge_id] = n.sent_at
        return latest

    def count_for_charge(self, charge_id):
        return sum(1 for n in self.rows if n.charge_id == charge_id)

    def of_type(self, notification_type):
        return [n for n in self.rows if n.notification_type == notification_type]


class FakeNotifier:
    """Records deliveries instead of calling the WhatsApp API."""

    def __init__(self):
        self.sent = []

    def send(self, phone, notification):
        self.sent.append((phone, notification))
        return True

    def send_all(self, deliveries):
        return sum(1 for phone, n in deliveries if self.send(phone, n))
