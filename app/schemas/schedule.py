# app/schemas/schedule.py
from sqlmodel import SQLModel, Field


class TimeBreakdownEntry(SQLModel):
    """
    One load of a slot that arrives in several trips.
    """

    time: str
    quantity: float


class LineItemSummary(SQLModel):
    """
    What one cart item contributes to a single delivery time.
    """

    product_id: int
    product_name: str
    product_photo: str | None = None
    product_type: str | None = None
    unit_of_measure: str
    quantity: float
    custom_blend_mix: str | None = None
    truck_type: str | None = None
    truck_label: str | None = None
    breakdown: list[TimeBreakdownEntry] = Field(default_factory=list)


class TimeGroup(SQLModel):
    time: str | None
    time_label: str
    items: list[LineItemSummary]


class DateGroup(SQLModel):
    date: str | None
    date_label: str
    deliveries: list[TimeGroup]


class ScheduleSummary(SQLModel):
    total_quantity: float
    total_products: int
    total_delivery_slots: int
    delivery_dates: list[str]


class ScheduleRead(SQLModel):
    """
    Review-step payload: grouped deliveries plus headline totals.
    """

    groups: list[DateGroup]
    summary: ScheduleSummary
