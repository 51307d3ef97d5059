# app/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from app.models.order import Order
from app.schemas.order import OrderSubmission


class OrderRepository:
    """
    Data access layer for submitted orders.

    NOTE:
      - No commits here; checkout is a multi-step transaction
        (store order + clear cart). The service calls session.commit().
    """

    def submit(
        self,
        session: Session,
        client_id: uuid.UUID,
        payload: OrderSubmission,
    ) -> Order:
        """
        Insert an Order holding the payload verbatim, ensure id is populated.
        """
        order = Order(
            client_id=client_id,
            project_id=payload.project_id,
            payload=payload.model_dump(mode="json"),
        )
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def list_for_client(
        self,
        session: Session,
        client_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.client_id == client_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()
