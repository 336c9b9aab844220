from typing import Optional

from fastapi import APIRouter, Depends

from storefront_app.api.deps import get_accounts, get_session, get_token
from storefront_app.schemas import (
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    RoleUpdateRequest,
    Session,
    VerifyCodeRequest,
)
from storefront_app.services.accounts import AccountService

router = APIRouter()


# ── Registration & verification ──

@router.post("/auth/register", status_code=201)
async def register(data: RegisterRequest, accounts: AccountService = Depends(get_accounts)):
    pending = await accounts.register(data.name, data.email, data.phone, data.password)
    return {
        "ok": True,
        "email": pending.email,
        "emailSent": pending.email_sent,
        "message": pending.message,
    }


@router.post("/auth/verify-otp")
async def verify_otp(data: VerifyCodeRequest, accounts: AccountService = Depends(get_accounts)):
    grant = await accounts.verify_registration(data.email, data.code)
    return {"ok": True, **grant.to_response()}


@router.post("/auth/resend-otp")
async def resend_otp(data: EmailRequest, accounts: AccountService = Depends(get_accounts)):
    pending = await accounts.resend_otp(data.email)
    return {"ok": True, "emailSent": pending.email_sent, "message": pending.message}


# ── Sessions ──

@router.post("/auth/login")
async def login(data: LoginRequest, accounts: AccountService = Depends(get_accounts)):
    grant = await accounts.login(data.email, data.password)
    return {"ok": True, **grant.to_response()}


@router.post("/auth/logout")
async def logout(
    token: Optional[str] = Depends(get_token),
    accounts: AccountService = Depends(get_accounts),
):
    await accounts.logout(token)
    return {"ok": True}


@router.get("/auth/session")
async def session_check(session: Session = Depends(get_session)):
    return {"ok": True, "session": session.to_store()}


# ── Password reset ──

@router.post("/auth/forgot-password")
async def forgot_password(data: EmailRequest, accounts: AccountService = Depends(get_accounts)):
    message = await accounts.request_password_reset(data.email)
    return {"ok": True, "message": message}


@router.post("/auth/reset-password")
async def reset_password(data: ResetPasswordRequest, accounts: AccountService = Depends(get_accounts)):
    grant = await accounts.reset_password(data.email, data.code, data.new_password)
    return {"ok": True, **grant.to_response()}


# ── Administration ──

@router.get("/admin/users")
async def admin_users(
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_accounts),
):
    return {"users": await accounts.list_users(session)}


@router.put("/admin/users/{email}/role")
async def admin_update_role(
    email: str,
    data: RoleUpdateRequest,
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_accounts),
):
    user = await accounts.update_user_role(session, email, data.role)
    return {"ok": True, "user": user}
