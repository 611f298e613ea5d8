"""Offset resolver.

Turns an (anchor, signed amount, unit) offset into a concrete date once the
anchor date is known. Pure calendar arithmetic, no clock access.

Month policy: the day of month is clamped to the last day of the target
month (Jan 31 + 1 month -> Feb 28, or Feb 29 in a leap year).
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Mapping, Optional

from ..errors import CalendarOverflow
from ..models.template import AnchorKind, Offset, OffsetUnit


def resolve(offset: Offset, anchor_date: date) -> date:
    """Resolve ``offset`` against ``anchor_date``.

    Raises:
        CalendarOverflow: if the result falls outside date.min..date.max.
    """
    if offset.unit is OffsetUnit.MONTH:
        return _add_months(anchor_date, offset.amount)

    days = offset.amount * 7 if offset.unit is OffsetUnit.WEEK else offset.amount
    try:
        return anchor_date + timedelta(days=days)
    except OverflowError as exc:
        raise CalendarOverflow(
            f"{offset.amount} {offset.unit.value}(s) from {anchor_date.isoformat()} is out of range"
        ) from exc


def resolve_against(
    offset: Offset,
    final_deadline: date,
    activations: Mapping[str, Optional[date]],
) -> Optional[date]:
    """Resolve ``offset`` against whichever anchor it names.

    Args:
        offset: The offset to resolve.
        final_deadline: The project's current final deadline.
        activations: Trigger blueprint id -> activation date (None while pending).

    Returns:
        The concrete date, or None when the anchoring trigger has not fired.
    """
    if offset.anchor.kind is AnchorKind.FINAL_DEADLINE:
        return resolve(offset, final_deadline)
    activated_on = activations.get(offset.anchor.trigger_id)
    if activated_on is None:
        return None
    return resolve(offset, activated_on)


def describe(offset: Offset) -> str:
    """Human-readable form, e.g. '3 weeks before final deadline'."""
    unit = offset.unit.value
    count = abs(offset.amount)
    if count != 1:
        unit += "s"
    if offset.anchor.kind is AnchorKind.FINAL_DEADLINE:
        anchor = "final deadline"
    else:
        anchor = f"trigger '{offset.anchor.trigger_id}'"
    if offset.amount == 0:
        return f"on {anchor}"
    direction = "before" if offset.amount < 0 else "after"
    return f"{count} {unit} {direction} {anchor}"


def _add_months(anchor_date: date, months: int) -> date:
    month_index = anchor_date.year * 12 + (anchor_date.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    if not date.min.year <= year <= date.max.year:
        raise CalendarOverflow(
            f"{months} month(s) from {anchor_date.isoformat()} is out of range"
        )
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor_date.day, last_day))
