# app/services/order_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import FieldRequirements, SchedulingConfig
from app.models.order import Order
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.cart import CartItem
from app.schemas.order import OrderCreate, OrderRead, OrderSubmission
from app.services.allocation_validator import validate_cart
from app.services.order_mapper import build_order_payload

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business logic for placing orders.

    Responsibilities:
      - Refuse an empty cart
      - Gate checkout on the allocation validator
      - Map cart + form into the submission payload
      - Hand the payload to the order API and clear the cart after success
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        config: SchedulingConfig,
        requirements: FieldRequirements | None = None,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.config = config
        self.requirements = requirements or FieldRequirements()

    # -------- helpers --------

    def _load_valid_cart(self, session: Session, client_id: uuid.UUID) -> list[CartItem]:
        cart_items = self.cart_repo.load(session, client_id)
        if not cart_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        result = validate_cart(cart_items, self.requirements, self.config)
        if not result.ok:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Cart validation failed",
                    "items": {
                        str(pid): [issue.model_dump() for issue in issues]
                        for pid, issues in result.errors.items()
                    },
                },
            )
        return cart_items

    @staticmethod
    def _to_read(order: Order) -> OrderRead:
        return OrderRead(
            id=order.id,
            client_id=order.client_id,
            status=order.status,
            created_at=order.created_at,
            payload=OrderSubmission.model_validate(order.payload),
        )

    # -------- operations --------

    def preview(
        self,
        session: Session,
        client_id: uuid.UUID,
        payload: OrderCreate,
    ) -> OrderSubmission:
        """
        Return the payload that checkout would submit, without submitting.
        """
        cart_items = self._load_valid_cart(session, client_id)
        return build_order_payload(cart_items, payload)

    def checkout(
        self,
        session: Session,
        client_id: uuid.UUID,
        payload: OrderCreate,
    ) -> OrderRead:
        """
        Turn the client's cart into an order.

        Steps:
          1. Load cart; error if empty.
          2. Validate allocation and slot fields for every item.
          3. Map cart + form to the submission payload.
          4. Submit the payload.
          5. Clear cart.
          6. Commit transaction and return the order.
        """
        cart_items = self._load_valid_cart(session, client_id)
        submission = build_order_payload(cart_items, payload)

        order = self.order_repo.submit(session, client_id, submission)
        self.cart_repo.clear(session, client_id, commit=False)

        session.commit()
        session.refresh(order)

        logger.info(
            "Order %s placed for project %s (%d items)",
            order.id,
            submission.project_id,
            len(submission.items),
        )
        return self._to_read(order)

    def list_client_orders(
        self,
        session: Session,
        client_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_client(session, client_id, skip, limit)
        return [self._to_read(o) for o in orders]

    def get_client_order(
        self,
        session: Session,
        client_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderRead:
        """
        Get a single order for the client.

        - 404 if order not found or does not belong to this client.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.client_id != client_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return self._to_read(order)
