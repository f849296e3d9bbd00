"""Custom exception hierarchy for the Teguh API."""

from datetime import date
from typing import Any


class TeguhAPIError(Exception):
    """Base exception for all Teguh API errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)


# Authentication Errors (401)


class AuthenticationError(TeguhAPIError):
    """Base authentication error."""

    status_code = 401
    error_code = "AUTH_ERROR"
    message = "Authentication failed"


class MissingCredentialError(AuthenticationError):
    """No credentials provided."""

    error_code = "AUTH_MISSING_CREDENTIALS"
    message = "Authentication credentials required"


class InvalidCredentialError(AuthenticationError):
    """Credential was presented but could not be verified."""

    error_code = "AUTH_INVALID_CREDENTIALS"
    message = "Invalid credentials"


class InvalidTokenError(InvalidCredentialError):
    """Bad signature, malformed token, or the user behind it is gone."""

    error_code = "AUTH_INVALID_TOKEN"
    message = "Invalid or expired token"


class ExpiredTokenError(InvalidCredentialError):
    """Token has expired."""

    error_code = "AUTH_TOKEN_EXPIRED"
    message = "Authentication token has expired"


class InvalidAPIKeyError(InvalidCredentialError):
    """API key does not exist."""

    error_code = "INVALID_API_KEY"
    message = "Invalid API key"


class ExpiredKeyError(AuthenticationError):
    """API key is past its expiry."""

    error_code = "API_KEY_EXPIRED"
    message = "API key has expired"


# Authorization Errors (403)


class AuthorizationError(TeguhAPIError):
    """Base authorization error."""

    status_code = 403
    error_code = "AUTH_FORBIDDEN"
    message = "Access denied"


class InactiveAccountError(AuthorizationError):
    """The user account is deactivated."""

    error_code = "ACCOUNT_INACTIVE"
    message = "User account is inactive"


class InactiveKeyError(AuthorizationError):
    """The API key was revoked."""

    error_code = "API_KEY_INACTIVE"
    message = "API key is inactive"


class PermissionDeniedError(AuthorizationError):
    """User doesn't have permission for this resource."""

    error_code = "AUTH_PERMISSION_DENIED"
    message = "Admin access required"


# Quota Errors (429)


class QuotaExceededError(TeguhAPIError):
    """API key has used up its daily quota."""

    status_code = 429
    error_code = "RATE_LIMIT_EXCEEDED"
    message = "Daily API limit exceeded"

    def __init__(self, limit: int, remaining: int, reset_date: date):
        super().__init__(
            details={
                "limit": limit,
                "remaining": remaining,
                "reset_date": reset_date.isoformat(),
            },
        )
        self.limit = limit
        self.remaining = remaining
        self.reset_date = reset_date


class TooManyRequestsError(TeguhAPIError):
    """Too many requests from one client address."""

    status_code = 429
    error_code = "RATE_LIMIT_EXCEEDED"
    message = "Too many requests, please slow down"

    def __init__(self, limit: int, window_seconds: int, retry_after: int):
        super().__init__(
            message=f"Rate limit exceeded: {limit} requests per {window_seconds}s",
            details={
                "limit": limit,
                "window": f"{window_seconds}s",
                "retry_after": retry_after,
            },
        )
        self.retry_after = retry_after


# Validation Errors (400)


class ValidationError(TeguhAPIError):
    """Base validation error."""

    status_code = 400
    error_code = "VALIDATION_ERROR"
    message = "Validation failed"


class InvalidParametersError(ValidationError):
    """Invalid request parameters."""

    error_code = "INVALID_PARAMETERS"
    message = "Invalid request parameters"


class EmailAlreadyRegisteredError(ValidationError):
    """Registration with an e-mail that is taken."""

    error_code = "EMAIL_TAKEN"
    message = "Email already registered. Please login or use a different email."


class APIKeyLimitReachedError(ValidationError):
    """User already owns as many keys as the plan allows."""

    error_code = "API_KEY_LIMIT_REACHED"
    message = "API key limit reached for your plan"

    def __init__(self, plan: str, max_keys: int):
        super().__init__(
            message=f"The {plan} plan allows at most {max_keys} API keys",
            details={"plan": plan, "max_api_keys": max_keys},
        )


# Resource Not Found Errors (404)


class NotFoundError(TeguhAPIError):
    """Base not-found error."""

    status_code = 404
    error_code = "NOT_FOUND"
    message = "Resource not found"


class UserNotFoundError(NotFoundError):
    """User not found."""

    error_code = "USER_NOT_FOUND"
    message = "User not found"


class APIKeyNotFoundError(NotFoundError):
    """API key not found or not owned by the caller."""

    error_code = "API_KEY_NOT_FOUND"
    message = "API key not found"


# Internal Errors (500)


class StoreUnavailableError(TeguhAPIError):
    """The credential store could not be reached or the transaction failed."""

    status_code = 500
    error_code = "STORE_UNAVAILABLE"
    message = "Storage is temporarily unavailable"
