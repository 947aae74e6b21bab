"""
services/sweep_service.py
-------------------------
The periodic overdue & reminder sweep.

`plan_sweep` is pure: given the active charges and a reference date it
decides which charges become overdue, which get a pre-due reminder and
which get an overdue alert. `SweepService.run` executes a plan against the
repositories as a sequence of independently committed steps:

    1. promote past-due pending charges to overdue (guarded per row)
    2. spawn successors missing for paid recurring charges
    3. record reminder + overdue notifications in one batch
    4. only if (3) succeeded, stamp last_notification_sent_at on reminders
    5. hand the recorded notifications to the WhatsApp sink

A failure in (3) keeps (1) and leaves reminders unstamped, so the next run
selects and retries them.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from config import OVERDUE_ALERT_INTERVAL_HOURS, REMINDER_DAYS_AHEAD, USE_OVERDUE_PROCEDURE
from models.charge import Charge, STATUS_OVERDUE, STATUS_PENDING
from models.client import Client
from models.errors import UpstreamFailure
from models.notification import Notification, TYPE_OVERDUE, TYPE_REMINDER
from repositories.charge_repo import ChargeRepository
from repositories.client_repo import ClientRepository
from repositories.notification_repo import NotificationRepository
from services import lifecycle
from services.notifier import WhatsAppNotifier
from utils.formatting import render_overdue, render_reminder
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SweepPlan:
    """Outcome of planning one sweep over a set of charges."""
    to_mark_overdue: list[Charge] = field(default_factory=list)
    reminders: list[Charge] = field(default_factory=list)
    overdue_alerts: list[Charge] = field(default_factory=list)


@dataclass
class SweepResult:
    """Summary returned by the sweep trigger."""
    overdue_updated: bool = True
    charges_marked_overdue: int = 0
    reminders_sent: int = 0
    overdue_alerts: int = 0
    successors_spawned: int = 0
    notifications_persisted: bool = True

    def to_dict(self) -> dict:
        return {
            "success": True,
            "overdueUpdated": self.overdue_updated,
            "chargesMarkedOverdue": self.charges_marked_overdue,
            "remindersSent": self.reminders_sent,
            "overdueAlerts": self.overdue_alerts,
            "successorsSpawned": self.successors_spawned,
            "notificationsPersisted": self.notifications_persisted,
        }


def _alert_due(
    charge: Charge,
    last_alerts: dict[int, datetime],
    interval: Optional[timedelta],
    now: datetime,
) -> bool:
    if not interval:
        return True
    last = last_alerts.get(charge.id)
    return last is None or now - last >= interval


def plan_sweep(
    charges: list[Charge],
    today: date,
    reminder_days_ahead: int = REMINDER_DAYS_AHEAD,
    last_overdue_alerts: Optional[dict[int, datetime]] = None,
    overdue_alert_interval: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> SweepPlan:
    """
    Decide what one sweep does, without touching the input charges.

    Args:
        charges: Candidate charges (canceled and paid ones are ignored).
        today: Reference calendar date.
        reminder_days_ahead: Reminder fires for charges due exactly this many days ahead.
        last_overdue_alerts: charge_id -> time of the latest overdue alert.
        overdue_alert_interval: Minimum gap between overdue alerts; None/zero
            alerts on every run.
        now: Reference time for the throttle (defaults to current UTC time).

    Returns:
        A SweepPlan. Charges in `to_mark_overdue` are also in `overdue_alerts`
        (as projected copies) when their throttle allows.
    """
    now = now or datetime.now(timezone.utc)
    last_overdue_alerts = last_overdue_alerts or {}
    reminder_date = today + timedelta(days=reminder_days_ahead)
    plan = SweepPlan()

    for original in charges:
        if not original.is_active:
            continue
        charge = replace(original)
        if lifecycle.mark_overdue(charge, today):
            plan.to_mark_overdue.append(charge)

        if (
            charge.status == STATUS_PENDING
            and charge.due_date == reminder_date
            and charge.last_notification_sent_at is None
        ):
            plan.reminders.append(charge)
        elif charge.status == STATUS_OVERDUE and _alert_due(
            charge, last_overdue_alerts, overdue_alert_interval, now
        ):
            plan.overdue_alerts.append(charge)

    return plan


def build_notifications(
    plan: SweepPlan,
    clients: dict[int, Client],
    sent_at: datetime,
    reminder_days_ahead: int = REMINDER_DAYS_AHEAD,
) -> list[Notification]:
    """Render one notification per reminder and per overdue alert."""
    notifications = []
    for charge in plan.reminders:
        client = clients.get(charge.client_id)
        notifications.append(Notification(
            charge_id=charge.id,
            client_id=charge.client_id,
            user_id=charge.user_id,
            notification_type=TYPE_REMINDER,
            message_content=render_reminder(
                client.name if client else None, charge.amount,
                charge.due_date, reminder_days_ahead,
            ),
            sent_at=sent_at,
        ))
    for charge in plan.overdue_alerts:
        client = clients.get(charge.client_id)
        notifications.append(Notification(
            charge_id=charge.id,
            client_id=charge.client_id,
            user_id=charge.user_id,
            notification_type=TYPE_OVERDUE,
            message_content=render_overdue(
                client.name if client else None, charge.amount, charge.due_date,
            ),
            sent_at=sent_at,
        ))
    return notifications


class SweepService:
    """
    Runs the overdue & reminder sweep against the data store.

    Safe to run concurrently with itself: promotions are guarded updates,
    successor inserts are deduplicated by a unique index and reminder stamps
    only apply to unstamped charges.
    """

    def __init__(
        self,
        charge_repo: Optional[ChargeRepository] = None,
        client_repo: Optional[ClientRepository] = None,
        notification_repo: Optional[NotificationRepository] = None,
        notifier: Optional[WhatsAppNotifier] = None,
        reminder_days_ahead: int = REMINDER_DAYS_AHEAD,
        overdue_alert_interval_hours: int = OVERDUE_ALERT_INTERVAL_HOURS,
        use_overdue_procedure: bool = USE_OVERDUE_PROCEDURE,
    ):
        self.charges = charge_repo or ChargeRepository()
        self.clients = client_repo or ClientRepository()
        self.notifications = notification_repo or NotificationRepository()
        self.notifier = notifier or WhatsAppNotifier()
        self.reminder_days_ahead = reminder_days_ahead
        self.overdue_alert_interval = (
            timedelta(hours=overdue_alert_interval_hours) if overdue_alert_interval_hours > 0 else None
        )
        self.use_overdue_procedure = use_overdue_procedure

    def run(self, today: Optional[date] = None, now: Optional[datetime] = None) -> SweepResult:
        """
        Execute one sweep.

        Args:
            today: Reference date (defaults to the UTC date of `now`).
            now: Reference time for stamps and throttling (defaults to now, UTC).

        Raises:
            UpstreamFailure: If charges cannot be read or promoted.
        """
        now = now or datetime.now(timezone.utc)
        today = today or now.astimezone(timezone.utc).date()
        result = SweepResult()
        logger.info(f"Starting sweep for {today.isoformat()}")

        if self.use_overdue_procedure:
            result.overdue_updated = self._run_procedure()

        charges = self.charges.get_active()
        last_alerts = {}
        if self.overdue_alert_interval:
            candidates = [c.id for c in charges if lifecycle.is_overdue(c, today)]
            last_alerts = self.notifications.last_sent_at(candidates, TYPE_OVERDUE)

        plan = plan_sweep(
            charges, today,
            reminder_days_ahead=self.reminder_days_ahead,
            last_overdue_alerts=last_alerts,
            overdue_alert_interval=self.overdue_alert_interval,
            now=now,
        )

        # ── 1. Promotions ─────────────────────────────────
        lost = set()
        for charge in plan.to_mark_overdue:
            if self.charges.mark_overdue(charge.id, today):
                result.charges_marked_overdue += 1
            else:
                lost.add(charge.id)
        if lost:
            logger.info(f"{len(lost)} charges changed concurrently; left for next sweep")
            plan.overdue_alerts = [c for c in plan.overdue_alerts if c.id not in lost]

        # ── 2. Successor reconciliation ───────────────────
        result.successors_spawned = self._reconcile_successors()

        # ── 3. Record notifications ───────────────────────
        clients = self.clients.get_many(
            c.client_id for c in plan.reminders + plan.overdue_alerts
        )
        notifications = build_notifications(plan, clients, now, self.reminder_days_ahead)
        try:
            recorded = self.notifications.add_many(notifications)
        except UpstreamFailure as e:
            logger.warning(f"Could not record notifications, will retry next sweep: {e}")
            result.notifications_persisted = False
            return result

        # ── 4. Stamp reminders ────────────────────────────
        self.charges.stamp_notification((c.id for c in plan.reminders), now)
        result.reminders_sent = len(plan.reminders)
        result.overdue_alerts = len(plan.overdue_alerts)

        # ── 5. Deliver ────────────────────────────────────
        deliveries = [
            (clients[n.client_id].phone, n) for n in recorded if n.client_id in clients
        ]
        self.notifier.send_all(deliveries)

        logger.info(
            f"Sweep done: {result.charges_marked_overdue} marked overdue, "
            f"{result.reminders_sent} reminders, {result.overdue_alerts} overdue alerts, "
            f"{result.successors_spawned} successors spawned"
        )
        return result

    def _run_procedure(self) -> bool:
        try:
            self.charges.run_overdue_procedure()
        except UpstreamFailure as e:
            logger.warning(f"update_overdue_charges() failed, continuing with row updates: {e}")
            return False
        return True

    def _reconcile_successors(self) -> int:
        spawned = 0
        for parent in self.charges.get_paid_recurrent_without_successor():
            try:
                if self.charges.add_successor(lifecycle.successor_for(parent)):
                    spawned += 1
            except UpstreamFailure as e:
                logger.error(f"Could not spawn successor of charge #{parent.id}: {e}")
        return spawned
