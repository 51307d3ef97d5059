# app/services/ledger.py
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Any

from app.core.config import SchedulingConfig
from app.schemas.allocation import MAX_QUANTITY, AllocationStatus, SlotAllocation
from app.schemas.cart import CartItem

CENT = Decimal("0.01")

# Slots balance when |total - allocated| is strictly below this.
BALANCE_EPSILON = Decimal("0.01")

UPDATABLE_SLOT_FIELDS = {
    "quantity",
    "delivery_date",
    "delivery_time",
    "truck_type",
    "load_size",
    "time_interval",
}


class SlotNotFoundError(KeyError):
    """
    Raised when a slot id does not belong to the ledger.

    Slot ids always come from the ledger itself, so this means the caller
    is holding a stale or foreign id.
    """


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps the shortest repr of a float (0.1 -> "0.1", not 0.1000000000000000055)
    return Decimal(str(value))


def round_quantity(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def check_quantity(value: Decimal, name: str = "quantity") -> Decimal:
    if not value.is_finite() or value < 0 or value > MAX_QUANTITY:
        raise ValueError(f"{name} must be between 0 and {MAX_QUANTITY}")
    return value


class AllocationLedger:
    """
    Slot list and total quantity of one line item, kept together.

    The ledger is the only place that answers "does this line item balance?".
    Balance is a soft invariant: edits may leave the slots unbalanced and the
    validator blocks checkout until the user fixes them.

    Quantities are handled as `Decimal` internally and written back to the
    slots as floats rounded to two places.
    """

    def __init__(
        self,
        total_quantity: float,
        slots: list[SlotAllocation],
        config: SchedulingConfig | None = None,
    ):
        self.total_quantity = total_quantity
        self.slots = slots
        self.config = config or SchedulingConfig()

    # ---- construction ----

    @classmethod
    def from_item(cls, item: CartItem, config: SchedulingConfig | None = None) -> "AllocationLedger":
        return cls(item.quantity, item.delivery_slots, config)

    @classmethod
    def new(
        cls,
        total_quantity: float,
        config: SchedulingConfig | None = None,
        delivery_date: str | None = None,
    ) -> "AllocationLedger":
        """
        Ledger for a freshly added line item: one slot carrying everything.
        """
        ledger = cls(total_quantity, [], config)
        ledger.slots.append(ledger._default_slot(total_quantity, delivery_date))
        return ledger

    def apply_to(self, item: CartItem) -> CartItem:
        """
        Write total and slots back onto the cart item in one step.
        """
        item.quantity = self.total_quantity
        item.delivery_slots = self.slots
        return item

    def _default_slot(self, quantity: float, delivery_date: str | None = None) -> SlotAllocation:
        return SlotAllocation(
            quantity=quantity,
            delivery_date=delivery_date,
            delivery_time=self.config.default_delivery_time,
            truck_type=self.config.default_truck_type,
        )

    # ---- queries ----

    def _index_of(self, slot_id: str) -> int:
        for idx, slot in enumerate(self.slots):
            if slot.slot_id == slot_id:
                return idx
        raise SlotNotFoundError(slot_id)

    def get_slot(self, slot_id: str) -> SlotAllocation:
        return self.slots[self._index_of(slot_id)]

    def allocated(self) -> Decimal:
        return sum((to_decimal(s.quantity) for s in self.slots), Decimal("0"))

    def remaining(self) -> Decimal:
        return to_decimal(self.total_quantity) - self.allocated()

    def is_balanced(self) -> bool:
        return abs(self.remaining()) < BALANCE_EPSILON

    def allocation_status(self) -> AllocationStatus:
        total = to_decimal(self.total_quantity)
        allocated = self.allocated()
        remaining = total - allocated
        percentage = allocated / total * 100 if total != 0 else Decimal("0")
        return AllocationStatus(
            allocated=float(allocated),
            remaining=float(remaining),
            percentage=float(percentage),
            is_balanced=abs(remaining) < BALANCE_EPSILON,
        )

    # ---- mutations ----

    def set_total_quantity(self, new_total: float) -> None:
        """
        Change the total and rescale every slot by new_total / old_total.

        Each slot is rounded to two decimals; the rounding residual goes to
        the largest slot so the slot sum moves by exactly the ratio.
        When the old total is zero the new total is split evenly instead.
        """
        target_total = check_quantity(to_decimal(new_total), "total quantity")

        if not self.slots:
            self.slots.append(self._default_slot(0))

        old_total = to_decimal(self.total_quantity)

        if old_total == 0:
            scaled = self._split_evenly(target_total, len(self.slots))
        else:
            ratio = target_total / old_total
            scaled = [round_quantity(to_decimal(s.quantity) * ratio) for s in self.slots]
            expected = round_quantity(self.allocated() * ratio)
            residual = expected - sum(scaled, Decimal("0"))
            if residual:
                largest = max(range(len(scaled)), key=lambda i: scaled[i])
                scaled[largest] += residual

        for slot, qty in zip(self.slots, scaled):
            slot.quantity = float(qty)
        self.total_quantity = float(target_total)

    @staticmethod
    def _split_evenly(total: Decimal, count: int) -> list[Decimal]:
        share = (total / count).quantize(CENT, rounding=ROUND_DOWN)
        shares = [share] * count
        shares[-1] = round_quantity(total - share * (count - 1))
        return shares

    def add_slot(self, delivery_date: str | None = None) -> SlotAllocation:
        """
        Append a slot pre-filled with what is left to allocate (at most 1).

        A fully allocated ledger still gets a slot of 1, leaving it
        over-allocated until the user edits the quantities.
        """
        remaining = self.remaining()
        quantity = min(remaining, Decimal("1")) if remaining > 0 else Decimal("1")
        slot = self._default_slot(float(quantity), delivery_date)
        self.slots.append(slot)
        return slot

    def remove_slot(self, slot_id: str) -> bool:
        """
        Remove a slot by id. The last slot of a line item is never removed.
        """
        if len(self.slots) <= 1:
            return False
        del self.slots[self._index_of(slot_id)]
        return True

    def update_slot(self, slot_id: str, field: str, value: Any) -> SlotAllocation:
        """
        Replace one field on one slot. Sibling slots are left untouched.
        """
        if field not in UPDATABLE_SLOT_FIELDS:
            raise ValueError(f"Slot field '{field}' cannot be edited")

        idx = self._index_of(slot_id)
        data = self.slots[idx].model_dump()
        data[field] = value
        updated = SlotAllocation.model_validate(data)
        if field in ("quantity", "load_size") and getattr(updated, field) is not None:
            check_quantity(to_decimal(getattr(updated, field)), field)

        slot = self.slots[idx]
        setattr(slot, field, getattr(updated, field))
        return slot

    def replace_slots(self, slots: list[SlotAllocation]) -> None:
        """
        Replace the whole slot list; the total follows the new slot sum.
        """
        if not slots:
            raise ValueError("A line item needs at least one delivery slot")
        for slot in slots:
            check_quantity(to_decimal(slot.quantity))
        check_quantity(sum((to_decimal(s.quantity) for s in slots), Decimal("0")), "total quantity")
        self.slots = list(slots)
        self.total_quantity = float(round_quantity(self.allocated()))

    def increment(self, step: float = 1) -> None:
        """
        Add to the total and to the first slot, keeping a balanced ledger balanced.
        """
        step_d = to_decimal(step)
        check_quantity(to_decimal(self.total_quantity) + step_d, "total quantity")
        if not self.slots:
            self.slots.append(self._default_slot(0))
        first = self.slots[0]
        first.quantity = float(to_decimal(first.quantity) + step_d)
        self.total_quantity = float(to_decimal(self.total_quantity) + step_d)

    def fill_missing_dates(self, delivery_date: str) -> int:
        """
        Give every undated slot the order's primary delivery date.
        Returns how many slots were filled.
        """
        filled = 0
        for slot in self.slots:
            if not slot.delivery_date:
                slot.delivery_date = delivery_date
                filled += 1
        return filled
