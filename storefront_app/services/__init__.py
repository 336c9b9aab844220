from storefront_app.services.accounts import AccountService
from storefront_app.services.orders import OrderService
from storefront_app.services.verification import VerificationCodeManager

__all__ = ["AccountService", "OrderService", "VerificationCodeManager"]
