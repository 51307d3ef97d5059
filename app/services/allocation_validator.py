# app/services/allocation_validator.py
import logging
import math

from app.core.config import FieldRequirements, SchedulingConfig
from app.schemas.allocation import (
    AllocationIssue,
    CartValidation,
    SlotAllocation,
)
from app.schemas.cart import CartItem
from app.services.ledger import AllocationLedger, BALANCE_EPSILON, to_decimal
from app.services.schedule_service import MAX_TRIPS

logger = logging.getLogger(__name__)


def _missing_fields_message(requirements: FieldRequirements) -> str:
    fields = []
    if requirements.require_vehicle_type:
        fields.append("truck type")
    fields.append("date")
    if requirements.require_time:
        fields.append("time")
    if len(fields) == 1:
        listed = fields[0]
    else:
        listed = ", ".join(fields[:-1]) + " and " + fields[-1]
    return f"Please fill in {listed} for all slots."


def _amount(value, unit: str) -> str:
    return f"{value:.2f} {unit}".rstrip()


def _slot_is_complete(slot: SlotAllocation, requirements: FieldRequirements) -> bool:
    if not slot.delivery_date:
        return False
    if requirements.require_time and not slot.delivery_time:
        return False
    if requirements.require_vehicle_type and not slot.truck_type:
        return False
    return True


def _load_plan_issues(item: CartItem) -> list[AllocationIssue]:
    """
    A slot may arrive in several loads: load size and interval go together,
    and one load cannot be bigger than the slot itself or split it into
    more than MAX_TRIPS loads.
    """
    issues: list[AllocationIssue] = []
    for idx, slot in enumerate(item.delivery_slots, start=1):
        has_load = slot.load_size is not None and slot.load_size > 0
        has_interval = slot.time_interval is not None and slot.time_interval > 0

        if has_load != has_interval:
            issues.append(
                AllocationIssue(
                    kind="invalid_load_plan",
                    message=(
                        f"Delivery {idx}: Set both load size and time interval, "
                        "or leave both empty."
                    ),
                    slot_index=idx,
                )
            )
        if has_load and slot.load_size > slot.quantity:
            issues.append(
                AllocationIssue(
                    kind="invalid_load_plan",
                    message=(
                        f"Delivery {idx}: Load size cannot exceed slot quantity "
                        f"({slot.quantity:g})."
                    ),
                    slot_index=idx,
                )
            )
        elif has_load and has_interval:
            trips = math.ceil(to_decimal(slot.quantity) / to_decimal(slot.load_size))
            if trips > MAX_TRIPS:
                issues.append(
                    AllocationIssue(
                        kind="invalid_load_plan",
                        message=(
                            f"Delivery {idx}: Load size is too small, "
                            f"at most {MAX_TRIPS} loads per delivery."
                        ),
                        slot_index=idx,
                    )
                )
    return issues


def validate_item(
    item: CartItem,
    requirements: FieldRequirements | None = None,
    config: SchedulingConfig | None = None,
) -> list[AllocationIssue]:
    """
    Every issue found on one line item, in check order.

    Allocation problems and missing fields are reported side by side;
    a later check never hides an earlier one.
    """
    requirements = requirements or FieldRequirements()
    issues: list[AllocationIssue] = []
    unit = item.unit_of_measure

    if to_decimal(item.quantity) <= 0:
        issues.append(
            AllocationIssue(
                kind="degenerate_total",
                message="Set a quantity greater than zero.",
                unit=unit,
            )
        )

    ledger = AllocationLedger.from_item(item, config)
    remaining = ledger.remaining()
    if remaining >= BALANCE_EPSILON:
        issues.append(
            AllocationIssue(
                kind="unallocated",
                message=f"{_amount(remaining, unit)} unallocated.",
                remaining=float(remaining),
                unit=unit,
            )
        )
    elif remaining <= -BALANCE_EPSILON:
        issues.append(
            AllocationIssue(
                kind="over_allocated",
                message=f"Over-allocated by {_amount(abs(remaining), unit)}.",
                remaining=float(remaining),
                unit=unit,
            )
        )

    if any(not _slot_is_complete(s, requirements) for s in item.delivery_slots):
        issues.append(
            AllocationIssue(
                kind="incomplete_fields",
                message=_missing_fields_message(requirements),
            )
        )

    if config is not None and requirements.require_vehicle_type:
        known = config.truck_codes()
        for idx, slot in enumerate(item.delivery_slots, start=1):
            if slot.truck_type and slot.truck_type not in known:
                issues.append(
                    AllocationIssue(
                        kind="unknown_vehicle_type",
                        message=f"Delivery {idx}: Unknown truck type '{slot.truck_type}'.",
                        slot_index=idx,
                    )
                )

    issues.extend(_load_plan_issues(item))
    return issues


def validate_cart(
    items: list[CartItem],
    requirements: FieldRequirements | None = None,
    config: SchedulingConfig | None = None,
) -> CartValidation:
    """
    Gate for leaving the scheduling step.

    Returns `ok` plus the issues per product id; items without issues are
    left out of `errors`. Nothing is raised for an unbalanced cart.
    """
    errors: dict[int, list[AllocationIssue]] = {}
    for item in items:
        issues = validate_item(item, requirements, config)
        if issues:
            errors[item.product_id] = issues

    if errors:
        logger.info("Cart allocation check failed for products %s", sorted(errors))

    return CartValidation(ok=not errors, errors=errors)
