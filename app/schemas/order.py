# app/schemas/order.py
import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# Orders are stored as pending; later states are set downstream.
OrderStatus = Literal["pending"]


class OrderCreate(SQLModel):
    """
    Order-level form data collected before the scheduling step.

    User provides:
      - project and delivery address (with map pin)
      - primary delivery date (default for new slots)
      - site contact person
      - optional PO number / load size / repeat flag

    Backend derives:
      - items and their delivery slots from the cart
    """

    model_config = ConfigDict(extra="forbid")

    project_id: int
    po_number: str | None = None
    delivery_address: str
    delivery_lat: float = Field(ge=-90, le=90)
    delivery_long: float = Field(ge=-180, le=180)
    delivery_date: date
    load_size: str | None = None
    contact_person_name: str
    contact_person_number: str
    repeat_order: bool = False

    @field_validator("delivery_address", "contact_person_name", "contact_person_number")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("po_number", "load_size", mode="before")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = str(v).strip()
        return v or None


class OrderSlotPayload(SQLModel):
    """
    One delivery slot as sent to the order API (no client-side slot id).
    """

    quantity: float
    delivery_date: str | None
    delivery_time: str | None
    truck_type: str | None = None
    load_size: float | None = None
    time_interval: int | None = None


class OrderItemPayload(SQLModel):
    product_id: int
    quantity: float
    custom_blend_mix: str | None = None
    delivery_slots: list[OrderSlotPayload]


class OrderSubmission(SQLModel):
    """
    Wire payload consumed by the order-creation API.
    """

    project_id: int
    po_number: str | None = None
    delivery_address: str
    delivery_lat: float
    delivery_long: float
    delivery_date: str
    load_size: str | None = None
    contact_person_name: str
    contact_person_number: str
    repeat_order: bool = False
    items: list[OrderItemPayload]


class OrderRead(SQLModel):
    """
    An order accepted by the submission API.
    """

    id: uuid.UUID
    client_id: uuid.UUID
    status: OrderStatus
    created_at: datetime
    payload: OrderSubmission
