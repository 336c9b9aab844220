import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from storefront_app.api.auth_routes import router as auth_router
from storefront_app.api.order_routes import router as order_router
from storefront_app.auth import PasswordHasher, SessionManager
from storefront_app.config import Settings, load_settings
from storefront_app.errors import StorefrontError
from storefront_app.services.accounts import AccountService
from storefront_app.services.mailer import ConsoleEmailSender, EmailSender, HttpEmailSender
from storefront_app.services.orders import OrderService
from storefront_app.services.verification import (
    OTP_PURPOSE,
    RESET_PURPOSE,
    VerificationCodeManager,
)
from storefront_app.storage.blob_store import BlobStore, MemoryBlobStore, SqliteBlobStore
from storefront_app.utils.json_safety import SafeJSONResponse
from storefront_app.utils.logger import get_logger

_logger = get_logger(__name__)


def build_store(settings: Settings) -> BlobStore:
    if settings.store_backend == "memory":
        _logger.warning("Using the in-memory blob store; data is lost on restart")
        return MemoryBlobStore()
    return SqliteBlobStore(settings.store_path, settings.store_namespace)


def build_mailer(settings: Settings) -> EmailSender:
    if settings.email_backend == "http":
        return HttpEmailSender(settings.email_api_url, settings.email_api_key, settings.email_from)
    return ConsoleEmailSender(settings.email_from)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[BlobStore] = None,
    mailer: Optional[EmailSender] = None,
    clock=time.time,
) -> FastAPI:
    settings = settings or load_settings()
    store = store if store is not None else build_store(settings)
    mailer = mailer if mailer is not None else build_mailer(settings)

    sessions = SessionManager(
        store,
        ttl_seconds=settings.session_ttl_seconds,
        live_role=settings.session_live_role,
        clock=clock,
    )
    accounts = AccountService(
        store,
        sessions,
        otp_codes=VerificationCodeManager(
            store, OTP_PURPOSE, settings.otp_ttl_seconds, settings.max_code_attempts, clock=clock
        ),
        reset_codes=VerificationCodeManager(
            store, RESET_PURPOSE, settings.reset_ttl_seconds, settings.max_code_attempts, clock=clock
        ),
        mailer=mailer,
        hasher=PasswordHasher(settings.password_salt, settings.password_iterations),
        bootstrap_admins=settings.bootstrap_admin_emails,
        strict_email=settings.strict_email,
    )

    app = FastAPI(
        title="Storefront Auth & Orders API",
        default_response_class=SafeJSONResponse,
    )
    app.state.settings = settings
    app.state.sessions = sessions
    app.state.accounts = accounts
    app.state.orders = OrderService(store)

    # ── Domain errors → JSON ──
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            _logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return SafeJSONResponse(exc.to_payload(), status_code=exc.status_code)

    # ── CORS ──
    origins = list(settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials="*" not in origins,
    )

    # ── API routes ──
    app.include_router(auth_router, prefix="/api")
    app.include_router(order_router, prefix="/api")

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
