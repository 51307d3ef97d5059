# app/services/order_mapper.py
from app.schemas.cart import CartItem
from app.schemas.order import (
    OrderCreate,
    OrderItemPayload,
    OrderSlotPayload,
    OrderSubmission,
)


def build_order_payload(items: list[CartItem], form: OrderCreate) -> OrderSubmission:
    """
    Translate the cart and order-level form into the order API payload.

    Callers must run `validate_cart` first; nothing is re-checked here.
    Client-side slot ids are dropped.
    """
    return OrderSubmission(
        project_id=form.project_id,
        po_number=form.po_number,
        delivery_address=form.delivery_address,
        delivery_lat=form.delivery_lat,
        delivery_long=form.delivery_long,
        delivery_date=form.delivery_date.isoformat(),
        load_size=form.load_size,
        contact_person_name=form.contact_person_name,
        contact_person_number=form.contact_person_number,
        repeat_order=form.repeat_order,
        items=[
            OrderItemPayload(
                product_id=item.product_id,
                quantity=item.quantity,
                custom_blend_mix=item.custom_blend_mix or None,
                delivery_slots=[
                    OrderSlotPayload(
                        quantity=slot.quantity,
                        delivery_date=slot.delivery_date,
                        delivery_time=slot.delivery_time,
                        truck_type=slot.truck_type,
                        load_size=slot.load_size,
                        time_interval=slot.time_interval,
                    )
                    for slot in item.delivery_slots
                ],
            )
            for item in items
        ],
    )
