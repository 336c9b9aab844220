"""
User credential lifecycle: registration, email verification, login,
password reset, logout and admin-side user management.
"""

import secrets
import uuid
from typing import FrozenSet, List, Optional

from storefront_app.auth import (
    USER_PREFIX,
    PasswordHasher,
    SessionManager,
    is_valid_email,
    normalize_email,
    user_key,
)
from storefront_app.errors import (
    DependencyError,
    EmailAlreadyRegistered,
    InvalidCredentials,
    NotFoundError,
    NotVerified,
    ValidationError,
)
from storefront_app.roles import ADMIN_ONLY, Role, parse_role
from storefront_app.schemas import PendingRegistration, Session, SessionGrant, User, utc_now_iso
from storefront_app.services.mailer import EmailSender, otp_message, reset_message
from storefront_app.services.verification import VerificationCodeManager
from storefront_app.storage.blob_store import BlobStore
from storefront_app.utils.logger import get_logger

_logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
RESET_REQUESTED_MESSAGE = "If this email is registered, a reset code has been sent."


def _validate_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class AccountService:
    def __init__(
        self,
        store: BlobStore,
        sessions: SessionManager,
        otp_codes: VerificationCodeManager,
        reset_codes: VerificationCodeManager,
        mailer: EmailSender,
        hasher: PasswordHasher,
        bootstrap_admins: FrozenSet[str] = frozenset(),
        strict_email: bool = True,
    ):
        if otp_codes.purpose == reset_codes.purpose:
            raise ValueError("OTP and reset codes must not share a key prefix")
        self.store = store
        self.sessions = sessions
        self.otp_codes = otp_codes
        self.reset_codes = reset_codes
        self.mailer = mailer
        self.hasher = hasher
        self.bootstrap_admins = frozenset(normalize_email(e) for e in bootstrap_admins)
        self.strict_email = strict_email
        self._absent_hash = hasher.hash(secrets.token_hex(16))

    # ── Store helpers ──

    async def get_user(self, email: str) -> Optional[User]:
        return User.from_store(await self.store.get_json(user_key(email)))

    async def _save_user(self, user: User) -> None:
        await self.store.set_json(user_key(user.email), user.to_store())

    async def _require_user(self, email: str) -> User:
        user = await self.get_user(email)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def _is_bootstrap_admin(self, email: str) -> bool:
        return normalize_email(email) in self.bootstrap_admins

    async def _grant(self, user: User) -> SessionGrant:
        token = await self.sessions.create_session(user, user.role)
        session = await self.sessions.validate_session(token)
        return SessionGrant(token=token, session=session)

    async def _send_code(self, user: User, codes: VerificationCodeManager, compose) -> bool:
        """Issue a code and email it; returns whether delivery succeeded."""
        code = await codes.issue(user.email)
        subject, body = compose(user.name, code, codes.ttl_seconds // 60)
        result = await self.mailer.send(user.email, subject, body)
        if result.success:
            return True

        _logger.warning(f"Could not email {codes.purpose} code to {user.email}: {result.error}")
        if self.strict_email:
            await codes.discard(user.email)
            raise DependencyError("Could not send the verification email. Try again later.")
        return False

    # ── Registration ──

    async def register(self, name: str, email: str, phone: str, password: str) -> PendingRegistration:
        name = (name or "").strip()
        phone = (phone or "").strip()
        if not name or not (email or "").strip() or not phone or not password:
            raise ValidationError("Name, email, phone and password are required")
        email = normalize_email(email)
        if not is_valid_email(email):
            raise ValidationError("Invalid email address")
        _validate_password(password)

        existing = await self.get_user(email)
        if existing is not None and existing.verified:
            raise EmailAlreadyRegistered()

        role = Role.ADMINISTRADOR if self._is_bootstrap_admin(email) else Role.CLIENTE
        user = User(
            id=existing.id if existing else uuid.uuid4().hex,
            name=name,
            email=email,
            phone=phone,
            password_hash=self.hasher.hash(password),
            verified=False,
            role=role,
        )
        if existing is not None:
            user.created_at = existing.created_at
        await self._save_user(user)
        _logger.info(f"Registered {email} as {role.value}; awaiting verification")

        sent = await self._send_code(user, self.otp_codes, otp_message)
        message = (
            "Verification code sent. Check your email."
            if sent
            else "Account created, but the verification email could not be sent. Request a new code."
        )
        return PendingRegistration(email=email, email_sent=sent, message=message)

    async def resend_otp(self, email: str) -> PendingRegistration:
        user = await self._require_user(email)
        if user.verified:
            raise ValidationError("This email is already verified. Log in instead.")
        sent = await self._send_code(user, self.otp_codes, otp_message)
        message = "Verification code sent." if sent else "The verification email could not be sent."
        return PendingRegistration(email=user.email, email_sent=sent, message=message)

    async def verify_registration(self, email: str, code: str) -> SessionGrant:
        email = normalize_email(email)
        if not email or not (code or "").strip():
            raise ValidationError("Email and code are required")
        await self.otp_codes.verify(email, code)

        user = await self._require_user(email)
        user.verified = True
        user.updated_at = utc_now_iso()
        await self._save_user(user)
        _logger.info(f"Verified {email}")
        return await self._grant(user)

    # ── Login / logout ──

    async def login(self, email: str, password: str) -> SessionGrant:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await self.get_user(email)
        # Hash even for unknown emails so timing does not reveal which accounts exist.
        password_ok = self.hasher.verify(password, user.password_hash if user else self._absent_hash)
        if user is None or not password_ok:
            _logger.info(f"Failed login for {email}")
            raise InvalidCredentials()
        if not user.verified:
            raise NotVerified()

        if self._is_bootstrap_admin(email) and user.role is not Role.ADMINISTRADOR:
            user.role = Role.ADMINISTRADOR
            user.updated_at = utc_now_iso()
            await self._save_user(user)
            _logger.info(f"Promoted bootstrap admin {email}")

        return await self._grant(user)

    async def logout(self, token: Optional[str]) -> None:
        await self.sessions.destroy_session(token)

    async def check_session(self, token: Optional[str]) -> Session:
        return await self.sessions.validate_session(token)

    # ── Password reset ──

    async def request_password_reset(self, email: str) -> str:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        user = await self.get_user(email)
        if user is None:
            return RESET_REQUESTED_MESSAGE
        if not user.verified:
            raise NotVerified("Complete your registration before resetting the password.")

        await self._send_code(user, self.reset_codes, reset_message)
        return RESET_REQUESTED_MESSAGE

    async def reset_password(self, email: str, code: str, new_password: str) -> SessionGrant:
        email = normalize_email(email)
        if not email or not (code or "").strip():
            raise ValidationError("Email and code are required")
        _validate_password(new_password)

        await self.reset_codes.verify(email, code)

        user = await self._require_user(email)
        user.password_hash = self.hasher.hash(new_password)
        user.updated_at = utc_now_iso()
        await self._save_user(user)
        _logger.info(f"Password reset for {email}")
        # Sessions issued before the reset stay valid.
        return await self._grant(user)

    # ── Administration ──

    async def list_users(self, session: Session) -> List[dict]:
        self.sessions.require_role(session, ADMIN_ONLY)
        users = []
        for entry in await self.store.list(USER_PREFIX):
            user = User.from_store(await self.store.get_json(entry["key"]))
            if user is not None:
                users.append(user)
        users.sort(key=lambda u: u.created_at, reverse=True)
        return [u.public() for u in users]

    async def update_user_role(self, session: Session, email: str, role: str) -> dict:
        self.sessions.require_role(session, ADMIN_ONLY)
        new_role = parse_role(role)
        user = await self._require_user(email)
        if user.role is not new_role:
            user.role = new_role
            user.updated_at = utc_now_iso()
            await self._save_user(user)
            _logger.info(f"{session.email} changed role of {user.email} to {new_role.value}")
        return user.public()
