"""Error Hierarchy — typed, categorized exceptions for all Parley failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory) and http_status
    - Validation/authentication/conflict errors are client-correctable (4xx)
    - Collaborator failures (storage, email) surface as 500 with a generic message
    - to_response() produces the REST envelope {"message", "code"}

Design Decisions:
    - Single hierarchy with ParleyError base: FastAPI global handler catches all
    - Unavailable errors keep the internal detail in `detail` for logs only
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class ParleyError(Exception):
    """Base exception for all Parley errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {"message": self.message, "code": self.code}


# ─── Validation Errors (400) ────────────────────────────────────

class InvalidEmailError(ParleyError):
    def __init__(self):
        super().__init__(
            "invalid email", "INVALID_EMAIL", ErrorCategory.VALIDATION, 400,
        )


class InvalidUsernameError(ParleyError):
    """Username is empty, outside 3-20 UTF-8 bytes, or has characters other than alphanumerics and '_'."""
    def __init__(self):
        super().__init__(
            "invalid username", "INVALID_USERNAME", ErrorCategory.VALIDATION, 400,
        )


class InvalidDestinationError(ParleyError):
    """Neither chat_id nor username supplied."""
    def __init__(self):
        super().__init__(
            "chat_id or username is required", "INVALID_DESTINATION",
            ErrorCategory.VALIDATION, 400,
        )


class UnknownChatError(ParleyError):
    def __init__(self):
        super().__init__(
            "invalid chat", "UNKNOWN_CHAT", ErrorCategory.VALIDATION, 400,
        )


# ─── Authentication Errors (401) ────────────────────────────────

class InvalidTokenError(ParleyError):
    """Token is malformed, badly signed, or expired."""
    def __init__(self):
        super().__init__(
            "invalid token", "INVALID_TOKEN", ErrorCategory.AUTHENTICATION, 401,
        )


class UnauthenticatedError(ParleyError):
    def __init__(self):
        super().__init__(
            "invalid authentication", "UNAUTHENTICATED",
            ErrorCategory.AUTHENTICATION, 401,
        )


class NoOtpPendingError(ParleyError):
    def __init__(self):
        super().__init__(
            "no otp was sent to this email", "NO_OTP_PENDING",
            ErrorCategory.AUTHENTICATION, 401,
        )


class OtpMismatchError(ParleyError):
    def __init__(self):
        super().__init__(
            "invalid otp", "OTP_MISMATCH", ErrorCategory.AUTHENTICATION, 401,
        )


# ─── Conflict Errors (409) ──────────────────────────────────────

class OtpAlreadyPendingError(ParleyError):
    def __init__(self):
        super().__init__(
            "otp already sent, try again later", "OTP_ALREADY_PENDING",
            ErrorCategory.CONFLICT, 409,
        )


class ProfileAlreadyExistsError(ParleyError):
    def __init__(self):
        super().__init__(
            "profile already exists", "PROFILE_ALREADY_EXISTS",
            ErrorCategory.CONFLICT, 409,
        )


class UsernameTakenError(ParleyError):
    def __init__(self):
        super().__init__(
            "username is already used", "USERNAME_TAKEN",
            ErrorCategory.CONFLICT, 409,
        )


# ─── Not Found (404) ────────────────────────────────────────────

class MessageNotFoundError(ParleyError):
    def __init__(self, message_id: int):
        super().__init__(
            f"message '{message_id}' not found", "MESSAGE_NOT_FOUND",
            ErrorCategory.NOT_FOUND, 404,
        )
        self.message_id = message_id


# ─── Collaborator Errors (500) ──────────────────────────────────

class CollaboratorUnavailableError(ParleyError):
    """Base for storage/email failures. User-facing message never carries detail."""

    def __init__(self, code: str, detail: str):
        super().__init__(
            "service isn't available", code, ErrorCategory.UNAVAILABLE, 500,
        )
        self.detail = detail


class StorageUnavailableError(CollaboratorUnavailableError):
    def __init__(self, detail: str, operation: str = "unknown"):
        super().__init__("STORAGE_UNAVAILABLE", f"{operation}: {detail}")
        self.operation = operation


class EmailDispatchError(CollaboratorUnavailableError):
    def __init__(self, detail: str):
        super().__init__("EMAIL_UNAVAILABLE", detail)
