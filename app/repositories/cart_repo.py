# app/repositories/cart_repo.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session, select

from app.models.cart import CartItemRecord
from app.schemas.allocation import SlotAllocation
from app.schemas.cart import CartItem

logger = logging.getLogger(__name__)


class CartRepository:
    """
    Persistence adapter for carts.

    - `load` / `save` move a whole cart at once (last writer wins).
    - Rows without a slot list are upgraded on load to a single slot
      covering the full quantity.
    - No business logic here.
    """

    # ---- mapping ----

    @staticmethod
    def _to_item(row: CartItemRecord) -> CartItem:
        if row.delivery_slots is None:
            logger.info(
                "Upgrading legacy cart row for product %s (no delivery slots)",
                row.product_id,
            )
            slots = [SlotAllocation(quantity=row.quantity)]
        else:
            slots = [SlotAllocation.model_validate(s) for s in row.delivery_slots]
            if not slots:
                slots = [SlotAllocation(quantity=row.quantity)]

        return CartItem(
            product_id=row.product_id,
            product_name=row.product_name,
            product_photo=row.product_photo,
            product_type=row.product_type,
            unit_of_measure=row.unit_of_measure,
            quantity=row.quantity,
            custom_blend_mix=row.custom_blend_mix,
            delivery_slots=slots,
        )

    @staticmethod
    def _to_record(cart_key: uuid.UUID, position: int, item: CartItem) -> CartItemRecord:
        return CartItemRecord(
            cart_key=cart_key,
            position=position,
            product_id=item.product_id,
            product_name=item.product_name,
            product_photo=item.product_photo,
            product_type=item.product_type,
            unit_of_measure=item.unit_of_measure,
            quantity=item.quantity,
            custom_blend_mix=item.custom_blend_mix,
            delivery_slots=[s.model_dump() for s in item.delivery_slots],
            updated_at=datetime.now(timezone.utc),
        )

    # ---- rows ----

    def list_rows(self, session: Session, cart_key: uuid.UUID) -> list[CartItemRecord]:
        stmt = (
            select(CartItemRecord)
            .where(CartItemRecord.cart_key == cart_key)
            .order_by(CartItemRecord.position)
        )
        return session.exec(stmt).all()

    # ---- adapter ----

    def load(self, session: Session, cart_key: uuid.UUID) -> list[CartItem]:
        return [self._to_item(row) for row in self.list_rows(session, cart_key)]

    def save(
        self,
        session: Session,
        cart_key: uuid.UUID,
        items: list[CartItem],
        commit: bool = True,
    ) -> None:
        """
        Replace the stored cart with `items`, keeping their order.
        """
        for row in self.list_rows(session, cart_key):
            session.delete(row)
        session.flush()

        session.add_all(
            [self._to_record(cart_key, pos, item) for pos, item in enumerate(items)]
        )
        if commit:
            session.commit()

    def clear(self, session: Session, cart_key: uuid.UUID, commit: bool = True) -> None:
        for row in self.list_rows(session, cart_key):
            session.delete(row)
        if commit:
            session.commit()
