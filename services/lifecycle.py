"""
services/lifecycle.py
---------------------
State machine for a single charge. Pure functions: no database access,
no clock reads. Callers pass `today` / `paid_at` explicitly and persist the
mutated Charge themselves.

    pending ──► overdue ──► paid
       └──────────────────► paid
    canceled is an orthogonal flag, settable from pending or overdue.
"""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from models.charge import Charge, STATUS_OVERDUE, STATUS_PAID, STATUS_PENDING
from models.errors import InvalidArgument, InvalidTransition
from utils.recurrence import next_occurrence, validate_day, validate_interval

_CENTS = Decimal("0.01")
MAX_AMOUNT = Decimal("1e10")

EDITABLE_FIELDS = (
    "amount",
    "due_date",
    "notes",
    "payment_link",
    "recurrence_interval",
    "recurrence_day",
)


def parse_amount(value) -> Decimal:
    """
    Convert user/API input into a positive two-decimal amount that fits
    the NUMERIC(12,2) column.

    Raises:
        InvalidArgument: If the value is not a number, not positive or too large.
    """
    if isinstance(value, bool):
        raise InvalidArgument(f"Invalid amount {value!r}")
    try:
        amount = Decimal(str(value).strip().replace(",", "."))
        if not amount.is_finite() or amount <= 0:
            raise InvalidArgument(f"Amount must be positive, got {value!r}")
        amount = amount.quantize(_CENTS)
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"Invalid amount {value!r}") from None
    if amount >= MAX_AMOUNT:
        raise InvalidArgument(f"Amount must be below {MAX_AMOUNT:,.0f}, got {value!r}")
    return amount


def _require_date(value, field_name: str) -> date:
    if isinstance(value, datetime) or not isinstance(value, date):
        raise InvalidArgument(f"{field_name} must be a calendar date, got {value!r}")
    return value


def is_overdue(charge: Charge, today: date) -> bool:
    """True iff the charge should be (or already is) classified overdue."""
    return (
        charge.is_active
        and charge.status in (STATUS_PENDING, STATUS_OVERDUE)
        and charge.due_date < today
    )


def create_charge(
    user_id: int,
    client_id: int,
    amount,
    due_date: date,
    notes: Optional[str] = None,
    interval: Optional[str] = None,
    recurrence_day: Optional[int] = None,
    payment_link: Optional[str] = None,
) -> Charge:
    """
    Build a new pending charge.

    When ``interval`` is given the charge is recurrent and its
    next_charge_date is computed from ``due_date`` (never from today).
    """
    charge = Charge(
        user_id=user_id,
        client_id=client_id,
        amount=parse_amount(amount),
        due_date=_require_date(due_date, "due_date"),
        notes=notes or None,
        payment_link=payment_link or None,
    )
    if interval is not None:
        _enable_recurrence(charge, interval, recurrence_day)
    elif recurrence_day is not None:
        raise InvalidArgument("recurrence_day requires a recurrence interval")
    return charge


def _enable_recurrence(charge: Charge, interval: str, day: Optional[int]) -> None:
    validate_interval(interval)
    validate_day(day)
    charge.is_recurrent = True
    charge.recurrence_interval = interval
    charge.recurrence_day = day if day is not None else charge.due_date.day
    charge.next_charge_date = next_occurrence(
        charge.due_date, interval, charge.recurrence_day
    )


def _disable_recurrence(charge: Charge) -> None:
    charge.is_recurrent = False
    charge.recurrence_interval = None
    charge.recurrence_day = None
    charge.next_charge_date = None


def mark_overdue(charge: Charge, today: date) -> bool:
    """
    Promote a past-due pending charge to overdue.

    Returns:
        True if the status changed. Already-overdue, paid, canceled or
        not-yet-due charges are left untouched.
    """
    if charge.status != STATUS_PENDING or not charge.is_active:
        return False
    if charge.due_date >= today:
        return False
    charge.status = STATUS_OVERDUE
    return True


def successor_for(charge: Charge) -> Charge:
    """
    Build the next charge of a recurring series (unsaved).

    The successor is due on the parent's next_charge_date and gets its own
    next_charge_date by applying the interval once more.
    """
    if not charge.is_recurrent or charge.next_charge_date is None:
        raise InvalidArgument(f"Charge #{charge.id} is not recurrent")
    due = charge.next_charge_date
    return Charge(
        user_id=charge.user_id,
        client_id=charge.client_id,
        amount=charge.amount,
        due_date=due,
        notes=charge.notes,
        payment_link=charge.payment_link,
        is_recurrent=True,
        recurrence_interval=charge.recurrence_interval,
        recurrence_day=charge.recurrence_day,
        next_charge_date=next_occurrence(
            due, charge.recurrence_interval, charge.recurrence_day
        ),
        parent_charge_id=charge.id,
    )


def confirm_payment(charge: Charge, paid_at: datetime) -> Optional[Charge]:
    """
    Mark a pending or overdue charge as paid.

    Returns:
        The spawn request (unsaved successor) for recurrent charges,
        otherwise None.

    Raises:
        InvalidTransition: If the charge is already paid or canceled.
    """
    if charge.is_canceled:
        raise InvalidTransition(f"Charge #{charge.id} is canceled and cannot be paid")
    if charge.status == STATUS_PAID:
        raise InvalidTransition(f"Charge #{charge.id} is already paid")
    charge.status = STATUS_PAID
    charge.paid_at = paid_at
    if charge.is_recurrent:
        return successor_for(charge)
    return None


def cancel(charge: Charge) -> None:
    """
    Soft-delete a pending or overdue charge.

    Raises:
        InvalidTransition: If the charge is paid or already canceled.
    """
    if charge.status == STATUS_PAID:
        raise InvalidTransition(f"Charge #{charge.id} is paid and cannot be canceled")
    if charge.is_canceled:
        raise InvalidTransition(f"Charge #{charge.id} is already canceled")
    charge.is_canceled = True


def edit(charge: Charge, today: date, **fields) -> Charge:
    """
    Apply user edits to an open charge.

    Passing ``recurrence_interval=None`` turns recurrence off. A due-date
    change clears the reminder stamp and re-derives pending/overdue.

    Raises:
        InvalidTransition: If the charge is paid or canceled.
        InvalidArgument: On unknown fields or invalid values.
    """
    if charge.status == STATUS_PAID or charge.is_canceled:
        raise InvalidTransition(f"Charge #{charge.id} can no longer be edited")
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidArgument(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

    # Validate everything on a copy so a bad value leaves the charge untouched
    draft = replace(charge)
    if "amount" in fields:
        draft.amount = parse_amount(fields["amount"])
    if "notes" in fields:
        draft.notes = fields["notes"] or None
    if "payment_link" in fields:
        draft.payment_link = fields["payment_link"] or None

    due_changed = False
    if "due_date" in fields:
        new_due = _require_date(fields["due_date"], "due_date")
        due_changed = new_due != draft.due_date
        draft.due_date = new_due

    recurrence_touched = "recurrence_interval" in fields or "recurrence_day" in fields
    if recurrence_touched or (due_changed and draft.is_recurrent):
        interval = fields.get("recurrence_interval", draft.recurrence_interval)
        if interval is None:
            if fields.get("recurrence_day") is not None:
                raise InvalidArgument("recurrence_day requires a recurrence interval")
            _disable_recurrence(draft)
        else:
            if "recurrence_day" in fields:
                day = fields["recurrence_day"]
            elif due_changed:
                day = draft.due_date.day
            else:
                day = draft.recurrence_day
            _enable_recurrence(draft, interval, day)

    if due_changed:
        draft.last_notification_sent_at = None
        if draft.status == STATUS_OVERDUE and draft.due_date >= today:
            draft.status = STATUS_PENDING
        mark_overdue(draft, today)

    for name in ("amount", "notes", "payment_link", "due_date", "status",
                 "is_recurrent", "recurrence_interval", "recurrence_day",
                 "next_charge_date", "last_notification_sent_at"):
        setattr(charge, name, getattr(draft, name))
    return charge
