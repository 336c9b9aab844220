"""
Order lifecycle: checkout, listing, customer payment confirmation and
status transitions by privileged roles.

Orders live under `order:{orderNumber}`. Per-customer listing uses a
hand-maintained index `customer-orders:{email}` (newest first). The index is
written after the order, so a reader may find numbers whose order is
missing; those entries are skipped.
"""

import math
from typing import List

from storefront_app.auth import normalize_email
from storefront_app.errors import ConflictError, Forbidden, NotFoundError, ValidationError
from storefront_app.roles import Permission, can_manage_orders, has_permission, is_delivery_role
from storefront_app.schemas import (
    TERMINAL_ORDER_STATUSES,
    CreateOrderRequest,
    CustomerInfo,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Session,
    utc_now_iso,
)
from storefront_app.storage.blob_store import BlobStore
from storefront_app.utils.json_safety import round_money
from storefront_app.utils.logger import get_logger

_logger = get_logger(__name__)

ORDER_PREFIX = "order:"
CUSTOMER_ORDERS_PREFIX = "customer-orders:"

DELIVERY_STATUSES = frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED})
# Keeps totals within what cent rounding can represent exactly.
MAX_ORDER_TOTAL = 1_000_000_000.0


def order_key(order_number: str) -> str:
    return f"{ORDER_PREFIX}{order_number}"


def customer_orders_key(email: str) -> str:
    return f"{CUSTOMER_ORDERS_PREFIX}{normalize_email(email)}"


def parse_order_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status {value!r}. Must be one of: {allowed}")


class OrderService:
    def __init__(self, store: BlobStore):
        self.store = store

    # ── Store helpers ──

    async def _load(self, order_number: str) -> Order:
        order = Order.from_store(await self.store.get_json(order_key(order_number)))
        if order is None:
            raise NotFoundError(f"Order {order_number} not found.")
        return order

    async def _save(self, order: Order) -> None:
        await self.store.set_json(order_key(order.order_number), order.to_store())

    async def _customer_index(self, email: str) -> List[str]:
        numbers = await self.store.get_json(customer_orders_key(email))
        return [str(n) for n in numbers] if isinstance(numbers, list) else []

    @staticmethod
    def _is_owner(session: Session, order: Order) -> bool:
        return normalize_email(order.customer.email) == normalize_email(session.email)

    def _require_reader(self, session: Session, order: Order) -> None:
        if self._is_owner(session, order) or can_manage_orders(session.role):
            return
        raise Forbidden("You cannot access this order.")

    # ── Operations ──

    async def create_order(self, session: Session, payload: CreateOrderRequest) -> Order:
        if not has_permission(session.role, Permission.PLACE_ORDERS):
            raise Forbidden("This role cannot place orders.")
        if not payload.items:
            raise ValidationError("An order needs at least one item")
        if not math.isfinite(payload.delivery_fee) or payload.delivery_fee < 0:
            raise ValidationError("deliveryFee must be >= 0")

        items = []
        for item in payload.items:
            if not item.name.strip():
                raise ValidationError("Every item needs a name")
            if item.quantity < 1:
                raise ValidationError(f"Quantity for '{item.name}' must be at least 1")
            if not math.isfinite(item.price) or item.price < 0:
                raise ValidationError(f"Price for '{item.name}' must be >= 0")
            items.append(OrderItem(name=item.name.strip(), quantity=item.quantity, price=item.price))

        if await self.store.get_json(order_key(payload.order_number)) is not None:
            raise ConflictError(f"Order {payload.order_number} already exists.")

        raw_subtotal = sum(i.quantity * i.price for i in items)
        if not raw_subtotal + payload.delivery_fee <= MAX_ORDER_TOTAL:
            raise ValidationError(f"Order total cannot exceed {MAX_ORDER_TOTAL:,.2f}")
        subtotal = round_money(raw_subtotal)
        delivery_fee = round_money(payload.delivery_fee)
        # Staff may place orders on behalf of a customer; everyone else orders as themselves.
        if payload.customer_email and can_manage_orders(session.role):
            email = normalize_email(payload.customer_email)
        else:
            email = normalize_email(session.email)
        order = Order(
            order_number=payload.order_number,
            customer=CustomerInfo(
                name=(payload.customer_name or session.name).strip(),
                email=email,
                phone=payload.customer_phone.strip(),
                address=payload.customer_address.strip(),
            ),
            items=items,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=round_money(subtotal + delivery_fee),
            payment_method=payload.payment_method,
            notes=payload.notes,
        )
        await self._save(order)

        numbers = [n for n in await self._customer_index(email) if n != order.order_number]
        await self.store.set_json(customer_orders_key(email), [order.order_number] + numbers)
        _logger.info(f"Order {order.order_number} created for {email} (total {order.total})")
        return order

    async def list_orders(self, session: Session) -> List[Order]:
        if has_permission(session.role, Permission.VIEW_ALL_ORDERS):
            orders = []
            for entry in await self.store.list(ORDER_PREFIX):
                order = Order.from_store(await self.store.get_json(entry["key"]))
                if order is not None:
                    orders.append(order)
            orders.sort(key=lambda o: o.created_at, reverse=True)
            return orders

        orders = []
        for number in await self._customer_index(session.email):
            order = Order.from_store(await self.store.get_json(order_key(number)))
            if order is None:
                _logger.warning(f"Index for {session.email} lists missing order {number}; skipping")
                continue
            orders.append(order)
        return orders

    async def get_order(self, session: Session, order_number: str) -> Order:
        order = await self._load(order_number)
        self._require_reader(session, order)
        return order

    async def confirm_payment(self, session: Session, order_number: str) -> Order:
        """Customer marks the order as paid; staff confirm it later."""
        order = await self._load(order_number)
        self._require_reader(session, order)
        if order.order_status is OrderStatus.CANCELLED:
            raise ValidationError("Cancelled orders cannot be paid.")
        if order.payment_confirmed_by_customer:
            return order

        now = utc_now_iso()
        order.payment_confirmed_by_customer = True
        if order.payment_status is PaymentStatus.AWAITING_PAYMENT:
            order.payment_status = PaymentStatus.PAID
        order.paid_at = order.paid_at or now
        order.updated_at = now
        await self._save(order)
        _logger.info(f"Customer confirmed payment for order {order_number}")
        return order

    async def update_status(self, session: Session, order_number: str, status: str) -> Order:
        new_status = parse_order_status(status)
        if not can_manage_orders(session.role):
            if not (is_delivery_role(session.role) and new_status in DELIVERY_STATUSES):
                raise Forbidden()

        order = await self._load(order_number)
        if order.order_status in TERMINAL_ORDER_STATUSES and order.order_status is not new_status:
            raise ValidationError(f"Order {order_number} is already {order.order_status.value}.")

        now = utc_now_iso()
        order.order_status = new_status
        if new_status is OrderStatus.PAID:
            order.payment_status = PaymentStatus.CONFIRMED
            order.paid_at = order.paid_at or now
        order.updated_at = now
        await self._save(order)
        _logger.info(f"{session.email} moved order {order_number} to {new_status.value}")
        return order
