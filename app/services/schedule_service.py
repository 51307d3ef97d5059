# app/services/schedule_service.py
import math
from datetime import date, datetime

from app.core.config import SchedulingConfig
from app.schemas.allocation import SlotAllocation
from app.schemas.cart import CartItem
from app.schemas.schedule import (
    DateGroup,
    LineItemSummary,
    ScheduleRead,
    ScheduleSummary,
    TimeBreakdownEntry,
    TimeGroup,
)
from app.services.ledger import round_quantity, to_decimal

UNSCHEDULED_LABEL = "Not scheduled"

# Most loads a single slot may be split into.
MAX_TRIPS = 200


def _sort_key(value: str | None) -> tuple[int, str]:
    # Missing keys sort after every real date/time
    return (1, "") if value is None else (0, value)


def format_date_label(value: str | None, date_format: str) -> str:
    if not value:
        return UNSCHEDULED_LABEL
    return date.fromisoformat(value).strftime(date_format)


def format_time_label(value: str | None) -> str:
    """
    "08:00" -> "8:00 AM", "13:30" -> "1:30 PM".
    """
    if not value:
        return UNSCHEDULED_LABEL
    hours, minutes = (int(part) for part in value.split(":"))
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {period}"


def group_schedule(
    items: list[CartItem],
    config: SchedulingConfig | None = None,
) -> list[DateGroup]:
    """
    Project every cart item's slots into a Date -> Time -> items tree.

    Steps:
      1. Flatten all slots together with their product info.
      2. Group by delivery_date, then by delivery_time within each date.
      3. Sort times and dates ascending. Zero-padded HH:mm and ISO dates
         sort chronologically as plain strings.

    Items inside a time group keep cart order, then slot order.
    The result is read-only; the ledgers stay the system of record.
    """
    config = config or SchedulingConfig()

    by_date: dict[str | None, dict[str | None, list[LineItemSummary]]] = {}
    for item in items:
        for slot in item.delivery_slots:
            by_time = by_date.setdefault(slot.delivery_date, {})
            by_time.setdefault(slot.delivery_time, []).append(
                LineItemSummary(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_photo=item.product_photo,
                    product_type=item.product_type,
                    unit_of_measure=item.unit_of_measure,
                    quantity=slot.quantity,
                    custom_blend_mix=item.custom_blend_mix,
                    truck_type=slot.truck_type,
                    truck_label=config.truck_label(slot.truck_type),
                    breakdown=build_time_breakdown(slot),
                )
            )

    groups: list[DateGroup] = []
    for day in sorted(by_date, key=_sort_key):
        by_time = by_date[day]
        deliveries = [
            TimeGroup(
                time=t,
                time_label=format_time_label(t),
                items=by_time[t],
            )
            for t in sorted(by_time, key=_sort_key)
        ]
        groups.append(
            DateGroup(
                date=day,
                date_label=format_date_label(day, config.date_format),
                deliveries=deliveries,
            )
        )
    return groups


def schedule_summary(items: list[CartItem]) -> ScheduleSummary:
    """
    Headline numbers for the review step.
    """
    total_quantity = sum((to_decimal(it.quantity) for it in items), to_decimal(0))
    dates = {s.delivery_date for it in items for s in it.delivery_slots if s.delivery_date}
    return ScheduleSummary(
        total_quantity=float(total_quantity),
        total_products=len(items),
        total_delivery_slots=sum(len(it.delivery_slots) for it in items),
        delivery_dates=sorted(dates),
    )


def build_schedule(items: list[CartItem], config: SchedulingConfig | None = None) -> ScheduleRead:
    return ScheduleRead(groups=group_schedule(items, config), summary=schedule_summary(items))


def _add_minutes(value: str, minutes: int) -> str:
    start = datetime.strptime(value, "%H:%M")
    total = (start.hour * 60 + start.minute + minutes) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def build_time_breakdown(slot: SlotAllocation) -> list[TimeBreakdownEntry]:
    """
    Split a slot into trips of `load_size`, one every `time_interval` minutes.

    Example: 1 t slot, 0.2 t loads, 60 min apart, starting 08:00
    -> 08:00, 09:00, 10:00, 11:00, 12:00 with 0.2 t each.

    The last trip carries whatever is left. Returns [] when the slot has no
    load plan, no start time, or would need more than MAX_TRIPS loads.
    """
    if not slot.load_size or slot.load_size <= 0:
        return []
    if not slot.time_interval or not slot.delivery_time:
        return []

    quantity = to_decimal(slot.quantity)
    load = to_decimal(slot.load_size)
    trips = math.ceil(quantity / load)
    if trips > MAX_TRIPS:
        return []

    entries: list[TimeBreakdownEntry] = []
    current = slot.delivery_time
    for i in range(trips):
        if i == trips - 1:
            qty = quantity - load * (trips - 1)
        else:
            qty = load
        entries.append(
            TimeBreakdownEntry(time=current, quantity=float(max(round_quantity(qty), to_decimal(0))))
        )
        current = _add_minutes(current, slot.time_interval)
    return entries
