# app/models/order.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Order handed over to the order-creation API.

    The mapped submission payload is stored verbatim; pricing and supplier
    assignment happen downstream.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    client_id: uuid.UUID = Field(
        index=True,
    )

    project_id: int = Field(
        index=True,
        description="Project the materials are delivered to",
    )

    status: str = Field(
        default="pending",
        index=True,
        description="Order status, pending on submission",
    )

    payload: dict[str, Any] = Field(
        sa_column=Column(JSON, nullable=False),
        description="Submission payload (items with delivery slots)",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
