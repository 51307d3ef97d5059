# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_client
from app.core.config import get_field_requirements, get_scheduling_config
from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderCreate, OrderRead, OrderSubmission
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
service = OrderService(
    order_repo,
    cart_repo,
    get_scheduling_config(),
    get_field_requirements(),
)


@router.post("/preview", response_model=OrderSubmission)
def preview_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Show the payload checkout would submit for the current cart.
    """
    return service.preview(session, client_id, payload)


@router.post("/checkout", response_model=OrderRead)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Create an order from the current client's cart.

    Fails with 400 while any item is unbalanced or has incomplete slots.
    """
    return service.checkout(session, client_id, payload)


@router.get("/me", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated client's orders.
    """
    return service.list_client_orders(session, client_id, skip, limit)


@router.get("/me/{order_id}", response_model=OrderRead)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    client_id: uuid.UUID = Depends(require_client),
):
    """
    Get a single order belonging to the current client.
    """
    return service.get_client_order(session, client_id, order_id)
