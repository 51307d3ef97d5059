# app/services/cart_service.py
import logging
import uuid
from typing import Callable

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlmodel import Session

from app.core.config import FieldRequirements, SchedulingConfig
from app.repositories.cart_repo import CartRepository
from app.schemas.allocation import (
    AllocationStatus,
    CartValidation,
    SlotAllocation,
    SlotInput,
    SlotUpdate,
)
from app.schemas.cart import (
    CartItem,
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartSummary,
)
from app.schemas.schedule import ScheduleRead, TimeBreakdownEntry
from app.services.allocation_validator import validate_cart
from app.services.ledger import AllocationLedger, SlotNotFoundError, to_decimal
from app.services.schedule_service import build_schedule, build_time_breakdown

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for the cart and its delivery allocation.

    Responsibilities:
      - keep one line item per product, copying product display fields
      - route every quantity/slot change through an AllocationLedger
      - read-modify-write the whole cart on every mutation
      - expose allocation status, validation and the review schedule
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        config: SchedulingConfig,
        requirements: FieldRequirements | None = None,
    ):
        self.cart_repo = cart_repo
        self.config = config
        self.requirements = requirements or FieldRequirements()

    # ---- internal helpers ----

    @staticmethod
    def _find(items: list[CartItem], product_id: int) -> CartItem:
        for item in items:
            if item.product_id == product_id:
                return item
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not in cart",
        )

    def _ledger(self, item: CartItem) -> AllocationLedger:
        return AllocationLedger.from_item(item, self.config)

    def _summary(self, items: list[CartItem]) -> CartSummary:
        reads: list[CartItemRead] = []
        total_qty = to_decimal(0)
        total_slots = 0

        for it in items:
            total_qty += to_decimal(it.quantity)
            total_slots += len(it.delivery_slots)
            reads.append(
                CartItemRead(
                    **it.model_dump(),
                    allocation=self._ledger(it).allocation_status(),
                )
            )

        return CartSummary(
            items=reads,
            total_quantity=float(total_qty),
            total_slots=total_slots,
        )

    def _edit_ledger(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        edit: Callable[[AllocationLedger], object],
    ) -> CartSummary:
        """
        Load the cart, apply `edit` to one item's ledger, save the whole cart.
        """
        items = self.cart_repo.load(session, cart_key)
        item = self._find(items, product_id)
        ledger = self._ledger(item)
        try:
            edit(ledger)
        except SlotNotFoundError as e:
            logger.warning("Unknown slot id %s for product %s", e.args[0], product_id)
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Delivery slot not found",
            )
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=e.errors(include_url=False, include_context=False),
            )
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )
        ledger.apply_to(item)
        self.cart_repo.save(session, cart_key, items)
        return self._summary(items)

    # ---- public operations ----

    def get_cart_summary(self, session: Session, cart_key: uuid.UUID) -> CartSummary:
        """
        Return full cart summary:
          - items with their allocation status
          - total_quantity
          - total_slots
        """
        return self._summary(self.cart_repo.load(session, cart_key))

    def add_item(
        self,
        session: Session,
        cart_key: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Add a product to the cart.

        Rules:
          - new product: one default slot carrying the whole quantity
          - product already in cart: quantity is added to the total
            and to the first slot
        """
        items = self.cart_repo.load(session, cart_key)
        existing = next((i for i in items if i.product_id == payload.product_id), None)

        if existing:
            ledger = self._ledger(existing)
            try:
                ledger.increment(payload.quantity)
            except ValueError as e:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=str(e),
                )
            ledger.apply_to(existing)
        else:
            ledger = AllocationLedger.new(payload.quantity, self.config)
            items.append(
                ledger.apply_to(
                    CartItem(
                        product_id=payload.product_id,
                        product_name=payload.product_name,
                        product_photo=payload.product_photo,
                        product_type=payload.product_type,
                        unit_of_measure=payload.unit_of_measure,
                        quantity=payload.quantity,
                        custom_blend_mix=payload.custom_blend_mix,
                    )
                )
            )

        self.cart_repo.save(session, cart_key, items)
        return self._summary(items)

    def update_quantity(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        payload: CartItemUpdate,
    ) -> CartSummary:
        """
        Change the total quantity; slots are rescaled proportionally.
        """
        return self._edit_ledger(
            session,
            cart_key,
            product_id,
            lambda ledger: ledger.set_total_quantity(payload.quantity),
        )

    def add_slot(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        delivery_date: str | None = None,
    ) -> CartSummary:
        return self._edit_ledger(
            session,
            cart_key,
            product_id,
            lambda ledger: ledger.add_slot(delivery_date),
        )

    def remove_slot(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        slot_id: str,
    ) -> CartSummary:
        """
        Remove a slot. Removing the last slot of an item is a no-op.
        """
        return self._edit_ledger(
            session,
            cart_key,
            product_id,
            lambda ledger: ledger.remove_slot(slot_id),
        )

    def update_slot(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        slot_id: str,
        payload: SlotUpdate,
    ) -> CartSummary:
        return self._edit_ledger(
            session,
            cart_key,
            product_id,
            lambda ledger: ledger.update_slot(slot_id, payload.field, payload.value),
        )

    def replace_slots(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        slots: list[SlotInput],
    ) -> CartSummary:
        """
        Replace all slots of an item; its total becomes the slot sum.
        """

        def _replace(ledger: AllocationLedger) -> None:
            ledger.replace_slots(
                [
                    SlotAllocation.model_validate(s.model_dump(exclude_none=True))
                    for s in slots
                ]
            )

        return self._edit_ledger(session, cart_key, product_id, _replace)

    def set_primary_delivery_date(
        self,
        session: Session,
        cart_key: uuid.UUID,
        delivery_date: str,
    ) -> CartSummary:
        """
        Give every slot without a date the order's primary delivery date.
        """
        items = self.cart_repo.load(session, cart_key)
        filled = sum(self._ledger(it).fill_missing_dates(delivery_date) for it in items)
        if filled:
            self.cart_repo.save(session, cart_key, items)
        return self._summary(items)

    def update_custom_blend(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        blend: str | None,
    ) -> CartSummary:
        items = self.cart_repo.load(session, cart_key)
        item = self._find(items, product_id)
        item.custom_blend_mix = blend
        self.cart_repo.save(session, cart_key, items)
        return self._summary(items)

    def remove_item(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
    ) -> CartSummary:
        """
        Remove a product from the cart and return updated summary.
        """
        items = self.cart_repo.load(session, cart_key)
        self._find(items, product_id)
        remaining = [i for i in items if i.product_id != product_id]
        self.cart_repo.save(session, cart_key, remaining)
        return self._summary(remaining)

    def clear_cart(self, session: Session, cart_key: uuid.UUID) -> CartSummary:
        self.cart_repo.clear(session, cart_key)
        return CartSummary(items=[], total_quantity=0.0, total_slots=0)

    def slot_breakdown(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
        slot_id: str,
    ) -> list[TimeBreakdownEntry]:
        """
        Trips of one slot when it arrives in several loads.
        """
        items = self.cart_repo.load(session, cart_key)
        ledger = self._ledger(self._find(items, product_id))
        try:
            slot = ledger.get_slot(slot_id)
        except SlotNotFoundError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Delivery slot not found",
            )
        return build_time_breakdown(slot)

    def allocation_status(
        self,
        session: Session,
        cart_key: uuid.UUID,
        product_id: int,
    ) -> AllocationStatus:
        items = self.cart_repo.load(session, cart_key)
        return self._ledger(self._find(items, product_id)).allocation_status()

    def validate(
        self,
        session: Session,
        cart_key: uuid.UUID,
        requirements: FieldRequirements | None = None,
    ) -> CartValidation:
        items = self.cart_repo.load(session, cart_key)
        return validate_cart(items, requirements or self.requirements, self.config)

    def schedule(self, session: Session, cart_key: uuid.UUID) -> ScheduleRead:
        return build_schedule(self.cart_repo.load(session, cart_key), self.config)
