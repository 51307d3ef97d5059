# tests/test_ledger.py
import pytest
from pydantic import ValidationError

from app.core.config import SchedulingConfig
from app.schemas.allocation import MAX_QUANTITY, SlotAllocation
from app.services.ledger import AllocationLedger, SlotNotFoundError


def ledger_of(total, quantities, config=None) -> AllocationLedger:
    return AllocationLedger(total, [SlotAllocation(quantity=q) for q in quantities], config)


def quantities(ledger: AllocationLedger) -> list[float]:
    return [s.quantity for s in ledger.slots]


class TestSetTotalQuantity:
    def test_single_slot_follows_total(self):
        ledger = AllocationLedger(5, [SlotAllocation(quantity=5, delivery_date="2025-03-01")])

        ledger.set_total_quantity(10)

        assert quantities(ledger) == [10.0]
        assert ledger.total_quantity == 10.0
        assert ledger.allocation_status().is_balanced
        assert ledger.slots[0].delivery_date == "2025-03-01"

    def test_split_keeps_proportions(self):
        ledger = ledger_of(10, [6, 4])

        ledger.set_total_quantity(5)

        assert quantities(ledger) == [3.0, 2.0]
        assert sum(quantities(ledger)) == pytest.approx(5)
        assert ledger.allocation_status().is_balanced

    @pytest.mark.parametrize(
        "start, new_total",
        [
            ([3.33, 3.33, 3.34], 7),
            ([1, 1, 1], 10),
            ([2.5, 2.5, 2.5, 2.5], 3.7),
            ([0.1, 0.2, 9.7], 12.34),
            ([6, 4], 0.03),
        ],
    )
    def test_sum_is_preserved(self, start, new_total):
        old_total = sum(start)
        ledger = ledger_of(old_total, start)

        ledger.set_total_quantity(new_total)

        assert abs(sum(quantities(ledger)) - new_total) < 0.01
        ratio = new_total / old_total
        tolerance = 0.005 * (len(start) + 1) + 1e-9
        for before, after in zip(start, quantities(ledger)):
            assert abs(after - before * ratio) <= tolerance

    def test_slots_are_rounded_to_cents(self):
        ledger = ledger_of(3, [1, 1, 1])

        ledger.set_total_quantity(10)

        for q in quantities(ledger):
            assert round(q, 2) == q
        assert sum(quantities(ledger)) == pytest.approx(10)

    def test_unbalanced_split_stays_proportionally_unbalanced(self):
        # 6 allocated against 5: rescaling does not silently fix it
        ledger = ledger_of(5, [5, 1])

        ledger.set_total_quantity(10)

        assert quantities(ledger) == [10.0, 2.0]
        assert ledger.allocation_status().remaining == pytest.approx(-2)

    def test_zero_total_does_not_divide(self):
        ledger = ledger_of(0, [0])

        ledger.set_total_quantity(5)

        assert quantities(ledger) == [5.0]
        assert ledger.total_quantity == 5.0
        assert ledger.allocation_status().is_balanced

    def test_zero_total_splits_evenly_over_existing_slots(self):
        ledger = ledger_of(0, [0, 0, 0])

        ledger.set_total_quantity(10)

        assert quantities(ledger) == [3.33, 3.33, 3.34]
        assert ledger.allocation_status().is_balanced

    def test_zero_total_is_deterministic(self):
        first = ledger_of(0, [2, 0])
        second = ledger_of(0, [2, 0])

        first.set_total_quantity(5)
        second.set_total_quantity(5)

        assert quantities(first) == quantities(second) == [2.5, 2.5]

    def test_negative_total_is_rejected(self):
        ledger = ledger_of(5, [5])

        with pytest.raises(ValueError):
            ledger.set_total_quantity(-1)

        assert quantities(ledger) == [5.0]


class TestAddSlot:
    def test_full_ledger_gets_one_unit_and_goes_over(self):
        ledger = ledger_of(10, [10])

        slot = ledger.add_slot()

        assert slot.quantity == 1.0
        status = ledger.allocation_status()
        assert status.allocated == pytest.approx(11)
        assert status.remaining == pytest.approx(-1)
        assert status.is_balanced is False

    def test_scenario_add_slot_on_five(self):
        ledger = ledger_of(5, [5])

        ledger.add_slot()

        assert quantities(ledger) == [5.0, 1.0]
        status = ledger.allocation_status()
        assert status.allocated == pytest.approx(6)
        assert status.remaining == -1

    def test_partial_remainder_is_used(self):
        ledger = ledger_of(10, [9.6])

        slot = ledger.add_slot()

        assert slot.quantity == pytest.approx(0.4)
        assert ledger.allocation_status().is_balanced

    def test_large_remainder_is_capped_at_one(self):
        ledger = ledger_of(10, [4])

        slot = ledger.add_slot()

        assert slot.quantity == 1.0

    def test_defaults_come_from_config(self):
        config = SchedulingConfig(default_delivery_time="06:30", default_truck_type="semi")
        ledger = ledger_of(10, [10], config)

        slot = ledger.add_slot("2025-04-02")

        assert slot.delivery_date == "2025-04-02"
        assert slot.delivery_time == "06:30"
        assert slot.truck_type == "semi"

    def test_new_slots_get_fresh_ids(self):
        ledger = ledger_of(10, [10])

        a = ledger.add_slot()
        b = ledger.add_slot()

        ids = [s.slot_id for s in ledger.slots]
        assert len(set(ids)) == 3
        assert a.slot_id != b.slot_id


class TestRemoveSlot:
    def test_last_slot_is_kept(self):
        ledger = ledger_of(5, [5])
        only = ledger.slots[0].slot_id

        assert ledger.remove_slot(only) is False
        assert len(ledger.slots) == 1

    def test_remove_by_id(self):
        ledger = ledger_of(10, [6, 4])
        first, second = ledger.slots

        assert ledger.remove_slot(first.slot_id) is True
        assert ledger.slots == [second]

    def test_never_drops_below_one(self):
        ledger = ledger_of(10, [4, 3, 3])

        for slot in list(ledger.slots):
            ledger.remove_slot(slot.slot_id)

        assert len(ledger.slots) == 1

    def test_unknown_id_raises(self):
        ledger = ledger_of(10, [6, 4])

        with pytest.raises(SlotNotFoundError):
            ledger.remove_slot("missing")


class TestUpdateSlot:
    def test_siblings_are_not_rebalanced(self):
        ledger = ledger_of(10, [6, 4])
        first = ledger.slots[0]

        ledger.update_slot(first.slot_id, "quantity", 7)

        assert quantities(ledger) == [7.0, 4.0]
        assert ledger.allocation_status().remaining == pytest.approx(-1)

    def test_updates_in_place(self):
        ledger = ledger_of(10, [10])
        slot = ledger.slots[0]

        returned = ledger.update_slot(slot.slot_id, "delivery_date", "2025-03-02")

        assert returned is slot
        assert slot.delivery_date == "2025-03-02"
        assert slot.quantity == 10.0

    def test_time_is_zero_padded(self):
        ledger = ledger_of(10, [10])

        ledger.update_slot(ledger.slots[0].slot_id, "delivery_time", "8:05")

        assert ledger.slots[0].delivery_time == "08:05"

    def test_blank_value_clears_field(self):
        ledger = AllocationLedger(10, [SlotAllocation(quantity=10, truck_type="semi")])

        ledger.update_slot(ledger.slots[0].slot_id, "truck_type", "")

        assert ledger.slots[0].truck_type is None

    def test_bad_date_is_rejected(self):
        ledger = ledger_of(10, [10])

        with pytest.raises(ValidationError):
            ledger.update_slot(ledger.slots[0].slot_id, "delivery_date", "01/03/2025")

        assert ledger.slots[0].delivery_date is None

    def test_date_is_stored_in_canonical_form(self):
        ledger = ledger_of(10, [10])

        ledger.update_slot(ledger.slots[0].slot_id, "delivery_date", "2025-3-1")

        assert ledger.slots[0].delivery_date == "2025-03-01"

    @pytest.mark.parametrize("value", ["20250301", "2025-W09-6", "2025-03-01T08:00"])
    def test_other_iso_date_forms_are_rejected(self, value):
        ledger = ledger_of(10, [10])

        with pytest.raises(ValidationError):
            ledger.update_slot(ledger.slots[0].slot_id, "delivery_date", value)

    def test_negative_quantity_is_rejected(self):
        ledger = ledger_of(10, [6, 4])

        with pytest.raises(ValidationError):
            ledger.update_slot(ledger.slots[0].slot_id, "quantity", -1)

        assert quantities(ledger) == [6.0, 4.0]

    def test_slot_id_cannot_be_edited(self):
        ledger = ledger_of(10, [10])

        with pytest.raises(ValueError):
            ledger.update_slot(ledger.slots[0].slot_id, "slot_id", "other")

    def test_unknown_id_raises(self):
        ledger = ledger_of(10, [10])

        with pytest.raises(SlotNotFoundError):
            ledger.update_slot("missing", "quantity", 1)


class TestAllocationStatus:
    @pytest.mark.parametrize(
        "allocated, balanced",
        [
            (9.991, True),   # remaining 0.009
            (9.989, False),  # remaining 0.011
            (10.009, True),  # remaining -0.009
            (10.011, False), # remaining -0.011
            (9.99, False),   # remaining exactly 0.01
            (10, True),
        ],
    )
    def test_balance_boundary(self, allocated, balanced):
        ledger = ledger_of(10, [allocated])

        assert ledger.allocation_status().is_balanced is balanced
        assert ledger.is_balanced() is balanced

    def test_fields(self):
        ledger = ledger_of(10, [6, 2])

        status = ledger.allocation_status()

        assert status.allocated == pytest.approx(8)
        assert status.remaining == pytest.approx(2)
        assert status.percentage == pytest.approx(80)
        assert status.is_balanced is False

    def test_zero_total(self):
        ledger = ledger_of(0, [0])

        status = ledger.allocation_status()

        assert status.percentage == 0
        assert status.remaining == 0
        assert status.is_balanced is True

    def test_no_float_drift(self):
        ledger = ledger_of(0.3, [0.1, 0.2])

        assert ledger.allocation_status().remaining == 0


class TestOtherMutations:
    def test_new_ledger_has_one_full_slot(self, config):
        ledger = AllocationLedger.new(4, config)

        assert len(ledger.slots) == 1
        assert ledger.slots[0].quantity == 4
        assert ledger.slots[0].delivery_date is None
        assert ledger.slots[0].delivery_time == config.default_delivery_time

    def test_increment_adds_to_first_slot(self):
        ledger = ledger_of(10, [6, 4])

        ledger.increment()

        assert ledger.total_quantity == 11
        assert quantities(ledger) == [7.0, 4.0]
        assert ledger.is_balanced()

    def test_replace_slots_sets_total_to_sum(self):
        ledger = ledger_of(10, [10])

        ledger.replace_slots([SlotAllocation(quantity=2.5), SlotAllocation(quantity=1.25)])

        assert ledger.total_quantity == 3.75
        assert ledger.is_balanced()

    def test_replace_slots_requires_one_slot(self):
        ledger = ledger_of(10, [10])

        with pytest.raises(ValueError):
            ledger.replace_slots([])

    def test_fill_missing_dates(self):
        ledger = AllocationLedger(
            10,
            [
                SlotAllocation(quantity=5),
                SlotAllocation(quantity=5, delivery_date="2025-03-04"),
            ],
        )

        filled = ledger.fill_missing_dates("2025-03-01")

        assert filled == 1
        assert [s.delivery_date for s in ledger.slots] == ["2025-03-01", "2025-03-04"]


class TestQuantityLimits:
    @pytest.mark.parametrize("total", [1e27, MAX_QUANTITY + 1, float("inf"), float("nan")])
    def test_total_out_of_range(self, total):
        ledger = ledger_of(10, [6, 4])

        with pytest.raises(ValueError):
            ledger.set_total_quantity(total)

        assert ledger.total_quantity == 10
        assert quantities(ledger) == [6.0, 4.0]

    def test_total_at_limit_is_accepted(self):
        ledger = ledger_of(10, [6, 4])

        ledger.set_total_quantity(MAX_QUANTITY)

        assert sum(quantities(ledger)) == MAX_QUANTITY
        assert ledger.is_balanced()

    def test_slot_quantity_out_of_range(self):
        ledger = ledger_of(10, [10])

        with pytest.raises(ValueError):
            ledger.update_slot(ledger.slots[0].slot_id, "quantity", 1e27)

        assert quantities(ledger) == [10.0]

    def test_replace_slots_sum_out_of_range(self):
        ledger = ledger_of(10, [10])
        big = [SlotAllocation(quantity=MAX_QUANTITY), SlotAllocation(quantity=1)]

        with pytest.raises(ValueError):
            ledger.replace_slots(big)

        assert quantities(ledger) == [10.0]

    def test_increment_past_limit(self):
        ledger = ledger_of(MAX_QUANTITY, [MAX_QUANTITY])

        with pytest.raises(ValueError):
            ledger.increment(1)

        assert ledger.total_quantity == MAX_QUANTITY
