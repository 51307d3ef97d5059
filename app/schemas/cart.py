# app/schemas/cart.py
from datetime import date

from pydantic import field_validator
from sqlmodel import SQLModel, Field

from app.schemas.allocation import MAX_QUANTITY, AllocationStatus, SlotAllocation


class CartItem(SQLModel):
    """
    One product line in a client's cart.

    Product display fields are copied when the item is added and are not
    re-fetched. `quantity` is the authoritative total; `delivery_slots`
    says how that total is split across deliveries.
    """

    product_id: int
    product_name: str
    product_photo: str | None = None
    product_type: str | None = None
    unit_of_measure: str = ""
    quantity: float
    custom_blend_mix: str | None = None
    delivery_slots: list[SlotAllocation] = Field(default_factory=list)


class CartItemCreate(SQLModel):
    """
    Payload for adding a product to the cart.

    Adding a product that is already in the cart increases its quantity.
    """

    product_id: int
    product_name: str
    product_photo: str | None = None
    product_type: str | None = None
    unit_of_measure: str = ""
    quantity: float = Field(default=1, gt=0, le=MAX_QUANTITY)
    custom_blend_mix: str | None = None

    @field_validator("product_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class CartItemUpdate(SQLModel):
    """
    Payload for changing the total quantity of a cart item.
    """

    quantity: float = Field(gt=0, le=MAX_QUANTITY)


class CustomBlendUpdate(SQLModel):
    custom_blend_mix: str | None = None

    @field_validator("custom_blend_mix")
    @classmethod
    def normalize_blend(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class PrimaryDateUpdate(SQLModel):
    """
    Order-level delivery date used for slots that have no date yet.
    """

    delivery_date: date


class CartItemRead(CartItem):
    """
    Cart item plus its current allocation status.
    """

    allocation: AllocationStatus


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartItemRead]
    total_quantity: float
    total_slots: int
