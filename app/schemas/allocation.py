# app/schemas/allocation.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import field_validator
from sqlmodel import SQLModel, Field

# Upper bound for any quantity accepted from a client.
MAX_QUANTITY = 1_000_000

IssueKind = Literal[
    "unallocated",
    "over_allocated",
    "incomplete_fields",
    "degenerate_total",
    "invalid_load_plan",
    "unknown_vehicle_type",
]


def new_slot_id() -> str:
    return str(uuid.uuid4())


class SlotAllocation(SQLModel):
    """
    One delivery event carrying part of a line item's quantity.

    Empty date/time/truck values mean the user has not filled them in yet.
    `load_size` + `time_interval` optionally describe how the slot arrives
    in smaller loads; they never create extra slots.
    """

    slot_id: str = Field(default_factory=new_slot_id)
    quantity: float = Field(default=0.0, ge=0)
    delivery_date: str | None = None  # YYYY-MM-DD
    delivery_time: str | None = None  # HH:mm (24-hour)
    truck_type: str | None = None
    load_size: float | None = None
    time_interval: int | None = None  # minutes between loads

    @field_validator("delivery_date", "delivery_time", "truck_type", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("load_size", "time_interval", mode="before")
    @classmethod
    def blank_number_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("delivery_date")
    @classmethod
    def check_date(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            parsed = datetime.strptime(v, "%Y-%m-%d")
        except ValueError:
            raise ValueError("delivery_date must be YYYY-MM-DD")
        # Canonical form keeps string order chronological
        return parsed.date().isoformat()

    @field_validator("delivery_time")
    @classmethod
    def check_time(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            parsed = datetime.strptime(v, "%H:%M")
        except ValueError:
            raise ValueError("delivery_time must be HH:mm (24-hour)")
        # Zero-padded form keeps string order chronological
        return parsed.strftime("%H:%M")


class SlotUpdate(SQLModel):
    """
    Payload for editing a single field of a slot.
    """

    field: Literal[
        "quantity",
        "delivery_date",
        "delivery_time",
        "truck_type",
        "load_size",
        "time_interval",
    ]
    value: float | int | str | None = None


class SlotInput(SQLModel):
    """
    Slot as sent by the client when replacing a whole slot list.
    `slot_id` is kept when present so existing slots keep their identity.
    """

    slot_id: str | None = None
    quantity: float = Field(ge=0, le=MAX_QUANTITY)
    delivery_date: str | None = None
    delivery_time: str | None = None
    truck_type: str | None = None
    load_size: float | None = Field(default=None, ge=0, le=MAX_QUANTITY)
    time_interval: int | None = Field(default=None, ge=0)


class SlotsReplace(SQLModel):
    """
    Payload for replacing all slots of a line item.
    """

    slots: list[SlotInput] = Field(min_length=1)


class AllocationStatus(SQLModel):
    """
    How much of a line item's quantity is covered by its slots.
    """

    allocated: float
    remaining: float
    percentage: float
    is_balanced: bool


class AllocationIssue(SQLModel):
    """
    One problem found on a line item. Returned as data, never raised.
    """

    kind: IssueKind
    message: str
    remaining: float | None = None
    unit: str | None = None
    slot_index: int | None = None  # 1-based, when the issue is about one slot


class CartValidation(SQLModel):
    """
    Result of validating the whole cart before leaving the scheduling step.
    """

    ok: bool
    errors: dict[int, list[AllocationIssue]] = Field(default_factory=dict)
