"""
Error taxonomy shared by the services and the HTTP layer.

Every failure a request can hit is a StorefrontError; the app maps them to
JSON responses using `status_code` and `code`.
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    status_code: int = 500
    code: str = "error"
    default_message: str = "Unexpected error."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


# ── Input ──

class ValidationError(StorefrontError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request."


class ConflictError(StorefrontError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


class EmailAlreadyRegistered(ConflictError):
    code = "email_already_registered"
    default_message = "This email is already registered."


class NotFoundError(StorefrontError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


# ── Authentication / authorization ──

class AuthError(StorefrontError):
    status_code = 401
    code = "auth_error"
    default_message = "Not authenticated."


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid email or password."


class NotVerified(AuthError):
    status_code = 403
    code = "not_verified"
    default_message = "Email not verified. Check your inbox for the verification code."


class SessionNotFound(AuthError):
    code = "session_not_found"
    default_message = "Session not found. Please log in."


class SessionExpired(AuthError):
    code = "session_expired"
    default_message = "Session expired. Please log in again."


class Forbidden(AuthError):
    status_code = 403
    code = "forbidden"
    default_message = "Insufficient permissions."


# ── Verification codes ──

class VerificationError(StorefrontError):
    status_code = 400
    code = "verification_error"
    default_message = "Verification failed."


class CodeNotFound(VerificationError):
    code = "code_not_found"
    default_message = "No pending code for this email. Request a new one."


class CodeExpired(VerificationError):
    code = "code_expired"
    default_message = "Code expired. Request a new one."


class AttemptsExhausted(VerificationError):
    status_code = 429
    code = "attempts_exhausted"
    default_message = "Too many attempts. Request a new code."


class CodeMismatch(VerificationError):
    code = "code_mismatch"

    def __init__(self, remaining: int):
        self.remaining = max(remaining, 0)
        super().__init__(f"Incorrect code. {self.remaining} attempt(s) remaining.")

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["remainingAttempts"] = self.remaining
        return payload


# ── Collaborators ──

class DependencyError(StorefrontError):
    status_code = 500
    code = "dependency_error"
    default_message = "A backing service failed. Try again later."
