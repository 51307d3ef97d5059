# app/routers/cart.py
import uuid
from datetime import date

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_client
from app.core.config import (
    TruckType,
    get_field_requirements,
    get_scheduling_config,
)
from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.schemas.allocation import (
    AllocationStatus,
    CartValidation,
    SlotsReplace,
    SlotUpdate,
)
from app.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartSummary,
    CustomBlendUpdate,
    PrimaryDateUpdate,
)
from app.schemas.schedule import ScheduleRead, TimeBreakdownEntry
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

scheduling_config = get_scheduling_config()
requirements = get_field_requirements()

cart_repo = CartRepository()
service = CartService(cart_repo, scheduling_config, requirements)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Get the current client's cart with allocation status per item.
    """
    return service.get_cart_summary(session, client_id)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Add product to the current client's cart.

    Returns the updated cart summary.
    """
    return service.add_item(session, client_id, payload)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    return service.clear_cart(session, client_id)


@router.get("/truck-types", response_model=list[TruckType])
def list_truck_types():
    """
    Vehicle catalog offered for delivery slots.
    """
    return scheduling_config.truck_types


@router.post("/primary-date", response_model=CartSummary)
def set_primary_delivery_date(
    payload: PrimaryDateUpdate,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Apply the order's primary delivery date to every undated slot.
    """
    return service.set_primary_delivery_date(
        session, client_id, payload.delivery_date.isoformat()
    )


@router.get("/validation", response_model=CartValidation)
def validate_my_cart(
    require_time: bool | None = None,
    require_vehicle_type: bool | None = None,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Check every item before leaving the scheduling step.

    Query flags override which slot fields are required for flows that
    do not expose time or truck selection.
    """
    flow = requirements.model_copy()
    if require_time is not None:
        flow.require_time = require_time
    if require_vehicle_type is not None:
        flow.require_vehicle_type = require_vehicle_type
    return service.validate(session, client_id, flow)


@router.get("/schedule", response_model=ScheduleRead)
def get_schedule(
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Deliveries grouped by date, then time, for the review step.
    """
    return service.schedule(session, client_id)


@router.patch("/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: int,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Update total quantity of a product; its slots are rescaled
    proportionally.
    """
    return service.update_quantity(
        session=session,
        cart_key=client_id,
        product_id=product_id,
        payload=payload,
    )


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: int,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Remove a product from the cart.
    """
    return service.remove_item(session, client_id, product_id)


@router.put("/{product_id}/custom-blend", response_model=CartSummary)
def update_custom_blend(
    product_id: int,
    payload: CustomBlendUpdate,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    return service.update_custom_blend(
        session, client_id, product_id, payload.custom_blend_mix
    )


@router.get("/{product_id}/allocation", response_model=AllocationStatus)
def get_allocation(
    product_id: int,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    return service.allocation_status(session, client_id, product_id)


@router.post("/{product_id}/slots", response_model=CartSummary)
def add_slot(
    product_id: int,
    delivery_date: date | None = None,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Add a delivery slot pre-filled with the unallocated remainder (max 1).
    """
    return service.add_slot(
        session,
        client_id,
        product_id,
        delivery_date.isoformat() if delivery_date else None,
    )


@router.put("/{product_id}/slots", response_model=CartSummary)
def replace_slots(
    product_id: int,
    payload: SlotsReplace,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Replace all slots of a product. The total becomes the slot sum.
    """
    return service.replace_slots(session, client_id, product_id, payload.slots)


@router.get(
    "/{product_id}/slots/{slot_id}/breakdown",
    response_model=list[TimeBreakdownEntry],
)
def get_slot_breakdown(
    product_id: int,
    slot_id: str,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Arrival time and quantity of each load when a slot is split by
    load size and time interval. Empty when the slot has no load plan.
    """
    return service.slot_breakdown(session, client_id, product_id, slot_id)


@router.patch("/{product_id}/slots/{slot_id}", response_model=CartSummary)
def update_slot(
    product_id: int,
    slot_id: str,
    payload: SlotUpdate,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Edit one field of one slot. Other slots are not rebalanced.
    """
    return service.update_slot(session, client_id, product_id, slot_id, payload)


@router.delete("/{product_id}/slots/{slot_id}", response_model=CartSummary)
def remove_slot(
    product_id: int,
    slot_id: str,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Remove a slot. The last slot of a product is kept.
    """
    return service.remove_slot(session, client_id, product_id, slot_id)
