from fastapi import APIRouter, Depends

from storefront_app.api.deps import get_orders, get_session
from storefront_app.schemas import CreateOrderRequest, Session, StatusUpdateRequest
from storefront_app.services.orders import OrderService

router = APIRouter()


@router.post("/orders", status_code=201)
async def create_order(
    data: CreateOrderRequest,
    session: Session = Depends(get_session),
    orders: OrderService = Depends(get_orders),
):
    order = await orders.create_order(session, data)
    return {"ok": True, "order": order.to_store()}


@router.get("/orders")
async def list_orders(
    session: Session = Depends(get_session),
    orders: OrderService = Depends(get_orders),
):
    return {"orders": [o.to_store() for o in await orders.list_orders(session)]}


@router.get("/orders/{order_number}")
async def get_order(
    order_number: str,
    session: Session = Depends(get_session),
    orders: OrderService = Depends(get_orders),
):
    order = await orders.get_order(session, order_number)
    return {"order": order.to_store()}


@router.post("/orders/{order_number}/confirm-payment")
async def confirm_payment(
    order_number: str,
    session: Session = Depends(get_session),
    orders: OrderService = Depends(get_orders),
):
    order = await orders.confirm_payment(session, order_number)
    return {"ok": True, "order": order.to_store()}


@router.put("/orders/{order_number}/status")
async def update_status(
    order_number: str,
    data: StatusUpdateRequest,
    session: Session = Depends(get_session),
    orders: OrderService = Depends(get_orders),
):
    order = await orders.update_status(session, order_number, data.status)
    return {"ok": True, "order": order.to_store()}

