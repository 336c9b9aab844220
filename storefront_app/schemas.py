from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from storefront_app.roles import Role


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StoreRecord(BaseModel):
    """Base for anything persisted as JSON; the store uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_store(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_store(cls, data: Optional[dict]):
        if data is None:
            return None
        return cls.model_validate(data)


# ── Stored records ──

class User(StoreRecord):
    id: str
    name: str
    email: str
    phone: str = ""
    password_hash: str
    verified: bool = False
    role: Role = Role.CLIENTE
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: Optional[str] = None

    def public(self) -> dict:
        data = self.to_store()
        data.pop("passwordHash", None)
        return data


class Session(StoreRecord):
    user_id: str
    email: str
    name: str
    role: Role
    created_at: str
    expires_at: int  # epoch milliseconds


class VerificationCode(StoreRecord):
    code: str
    email: str
    expires_at: int  # epoch milliseconds
    attempts: int = 0


class PaymentStatus(str, Enum):
    AWAITING_PAYMENT = "awaiting-payment"
    PAID = "paid"
    CONFIRMED = "confirmed"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    PAID = "paid"
    CANCELLED = "cancelled"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


class OrderItem(StoreRecord):
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class CustomerInfo(StoreRecord):
    name: str
    email: str
    phone: str = ""
    address: str = ""


class Order(StoreRecord):
    order_number: str
    customer: CustomerInfo
    items: List[OrderItem]
    subtotal: float
    delivery_fee: float = 0.0
    total: float
    payment_method: str
    payment_status: PaymentStatus = PaymentStatus.AWAITING_PAYMENT
    order_status: OrderStatus = OrderStatus.PENDING
    notes: str = ""
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: Optional[str] = None
    paid_at: Optional[str] = None
    payment_confirmed_by_customer: bool = False


# ── Results ──

class SessionGrant(BaseModel):
    token: str
    session: Session

    def to_response(self) -> dict:
        return {"token": self.token, "session": self.session.to_store()}


class PendingRegistration(BaseModel):
    email: str
    email_sent: bool
    message: str


# ── Request bodies ──
# Loose on purpose: the services own the validation rules and raise
# ValidationError with user-facing messages.

class RegisterRequest(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class EmailRequest(BaseModel):
    email: str = ""


class VerifyCodeRequest(BaseModel):
    email: str = ""
    code: str = ""


class ResetPasswordRequest(BaseModel):
    email: str = ""
    code: str = ""
    new_password: str = Field("", alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class RoleUpdateRequest(BaseModel):
    role: str


class OrderItemInput(BaseModel):
    name: str
    quantity: int
    price: float


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_number: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: str = ""
    customer_address: str = ""
    items: List[OrderItemInput]
    delivery_fee: float = 0.0
    payment_method: str
    notes: str = ""

    @field_validator("order_number", "payment_method")
    @classmethod
    def not_blank(cls, v, info):
        vv = str(v).strip()
        if not vv:
            raise ValueError(f"{info.field_name} must not be empty")
        return vv


class StatusUpdateRequest(BaseModel):
    status: str
