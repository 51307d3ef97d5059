# app/models/cart.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class CartItemRecord(SQLModel, table=True):
    """
    Stored cart line for a client.
    One client cannot have 2 rows for the same product.

    `delivery_slots` holds the slot list as JSON. Rows written before slots
    existed have it NULL and are upgraded when loaded.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_key: uuid.UUID = Field(
        index=True,
        description="Owner of the cart (client id from the access token)",
    )

    position: int = Field(
        default=0,
        description="Display order inside the cart",
    )

    product_id: int = Field(index=True)

    product_name: str
    product_photo: str | None = None
    product_type: str | None = None
    unit_of_measure: str = ""

    quantity: float = Field(
        description="Total ordered quantity for this product",
    )

    custom_blend_mix: str | None = None

    delivery_slots: list[dict[str, Any]] | None = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
