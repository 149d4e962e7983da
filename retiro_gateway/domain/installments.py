"""Installment schedule planning for retreat registrations"""

from datetime import date, timedelta
from typing import List, Optional, Sequence
from retiro_gateway.domain.models import PlannedInstallment
from retiro_gateway.domain.exceptions import (
    DateTooEarly,
    DateTooLate,
    DuplicateDates,
    InvalidScheduleInput,
    ScheduleConflict,
)
from retiro_gateway.utils.date_utils import parse_iso_date

MAX_INSTALLMENTS = 3


def split_amount(total_cents: int, count: int) -> List[int]:
    """
    Split a total into `count` integer amounts.

    Every installment but the last gets floor(total / count); the last one
    absorbs the remainder so the sum is exact.

    Example:
        45001 cents / 3 → [15000, 15000, 15001]
    """
    base_amount = total_cents // count
    return [base_amount] * (count - 1) + [total_cents - base_amount * (count - 1)]


def _auto_due_dates(count: int, earliest: date, deadline: date) -> List[date]:
    """Evenly spaced interior dates between `earliest` and `deadline`, then the deadline"""
    window = (deadline - earliest).days

    if window <= 0:
        interior = [earliest] * (count - 1)
    else:
        step = window // count
        interior = [earliest + timedelta(days=i * step) for i in range(1, count)]

    return interior + [deadline]


def _explicit_due_dates(
    count: int,
    explicit_dates: Sequence[str | date],
    earliest: date,
    deadline: date,
) -> List[date]:
    """Validate client dates for installments 1..count-1 and force the last one to the deadline"""
    due_dates = []
    for index in range(1, count):
        if index > len(explicit_dates):
            raise InvalidScheduleInput(f"Missing due date for installment {index}", index=index)

        try:
            due_date = parse_iso_date(explicit_dates[index - 1])
        except (TypeError, ValueError):
            raise InvalidScheduleInput(f"Invalid due date for installment {index}", index=index)

        if due_date < earliest:
            raise DateTooEarly(
                f"Installment {index} due date must be on or after {earliest.isoformat()}",
                index=index,
            )
        if due_date > deadline:
            raise DateTooLate(
                f"Installment {index} due date must be on or before {deadline.isoformat()}",
                index=index,
            )
        due_dates.append(due_date)

    due_dates.append(deadline)
    return sorted(due_dates)


def _check_order(due_dates: List[date], deadline: date) -> None:
    for previous, current in zip(due_dates, due_dates[1:]):
        if current == previous:
            raise DuplicateDates(f"Two installments share the due date {current.isoformat()}")
        if current < previous:
            raise ScheduleConflict("Installment due dates are out of order")

    if due_dates[-1] != deadline:
        raise ScheduleConflict("Last installment must be due on the campaign deadline")


def plan_schedule(
    total_cents: int,
    count: int,
    today: date,
    deadline: date,
    min_lead_days: int,
    explicit_dates: Optional[Sequence[str | date]] = None,
) -> List[PlannedInstallment]:
    """
    Plan due dates and amounts for a registration's installments.

    Rules:
    - 1 to 3 installments
    - Every due date on or after today + min_lead_days and on or before the deadline
    - Last installment always due exactly on the deadline
    - Due dates strictly increasing by installment index
    - Last installment absorbs the rounding remainder

    Args:
        total_cents: Total amount to split (>= 0)
        count: Number of installments
        today: Reference date for the lead-time rule
        deadline: Fixed campaign deadline
        min_lead_days: Minimum days between today and any due date
        explicit_dates: Client dates (YYYY-MM-DD) for all but the last
            installment; None spreads the dates evenly

    Returns:
        PlannedInstallment list ordered by index (1-based)

    Raises:
        InvalidScheduleInput: Bad count/amount or malformed date (DateTooEarly
            and DateTooLate name the offending index)
        ScheduleConflict: Duplicate (DuplicateDates) or out-of-order dates
    """
    if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_INSTALLMENTS:
        raise InvalidScheduleInput(f"Installment count must be between 1 and {MAX_INSTALLMENTS}")
    if total_cents < 0:
        raise InvalidScheduleInput("Total amount must not be negative")

    earliest = today + timedelta(days=min_lead_days)

    if explicit_dates is None:
        due_dates = _auto_due_dates(count, earliest, deadline)
        try:
            _check_order(due_dates, deadline)
        except ScheduleConflict as e:
            # Window between the lead time and the deadline is too short to spread the dates
            raise type(e)(
                f"Deadline {deadline.isoformat()} is too close to schedule {count} installments "
                f"starting on {earliest.isoformat()}"
            ) from e
    else:
        due_dates = _explicit_due_dates(count, explicit_dates, earliest, deadline)
        _check_order(due_dates, deadline)

    amounts = split_amount(total_cents, count)

    return [
        PlannedInstallment(index=i + 1, amount_cents=amount, due_date=due_date)
        for i, (amount, due_date) in enumerate(zip(amounts, due_dates))
    ]
