from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront_app.errors import SessionNotFound
from storefront_app.schemas import Session
from storefront_app.services.accounts import AccountService
from storefront_app.services.orders import OrderService

# auto_error=False so a missing header surfaces as SessionNotFound, not FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_orders(request: Request) -> OrderService:
    return request.app.state.orders


def get_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_session(
    token: Optional[str] = Depends(get_token),
    accounts: AccountService = Depends(get_accounts),
) -> Session:
    if not token:
        raise SessionNotFound()
    return await accounts.check_session(token)
