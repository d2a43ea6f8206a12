"""
SmartQuery Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, one per failure class the API reports.
How:   Each exception carries a user-safe message and an optional context dict.
       Global exception handlers (registered in main.py) map them to HTTP
       status codes and a structured JSON body.
Who:   Raised by services, the Auth Gate and middleware; caught by global handlers.

Exception Hierarchy:
    SmartQueryError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthError                → 401 (no token) / 403 (bad token, bad password)
    ├── NotFoundError            → 404 Not Found (absent OR not owned by caller)
    ├── ConflictError            → 409 Conflict (duplicate username)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── StoreUnavailableError    → 500 Internal Server Error
    ├── LLMServiceError          → 503 Service Unavailable (retry later)
    └── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)
"""

from typing import Any, Dict, Optional


class SmartQueryError(Exception):
    """
    Base exception for all SmartQuery application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SmartQueryError):
    """
    Raised when client input fails a business rule.

    When:    Blank title or SQL text, blank username/password, unknown AI action.
    HTTP:    400 Bad Request

    Schema-level problems (null or over-long fields, a missing or non-JSON
    body) are answered with the same 400 body by the RequestValidationError
    handler in main.py.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(SmartQueryError):
    """
    Raised when the caller cannot be authenticated.

    HTTP:
        401 when no bearer token was presented at all
        403 when a token was presented but is malformed, forged or expired,
            and when a login password does not match
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        status_code: int = 403,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


class NotFoundError(SmartQueryError):
    """
    Raised when a requested resource does not exist for the caller.

    Ownership hiding:
        Services raise this same error, with the same message, whether the
        row is missing or belongs to another user. The two cases must stay
        indistinguishable to the client.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            # Logged only; the response message never echoes ids
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(SmartQueryError):
    """Raised when a create would violate a uniqueness rule (409)."""

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreUnavailableError(SmartQueryError):
    """
    Raised when the persistence layer fails or cannot be reached.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Driver errors, SQL and constraint names are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(SmartQueryError):
    """
    Raised when the AI assistant (Gemini) fails after all models and retries.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "AI assistant is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(SmartQueryError):
    """
    Raised when the circuit breaker is in OPEN state.

    When:    After cb_failure_threshold consecutive Gemini failures.
    HTTP:    503 Service Unavailable, with Retry-After.

    State machine:
        CLOSED → (N failures) → OPEN → (recovery timeout) → HALF_OPEN
        HALF_OPEN → success → CLOSED
        HALF_OPEN → failure → OPEN
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI assistant is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class RateLimitExceededError(SmartQueryError):
    """
    Raised when a client exceeds the per-IP request rate limit (429).
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
