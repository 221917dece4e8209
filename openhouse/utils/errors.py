"""Custom exception hierarchy for the Open House Rewards API."""

from __future__ import annotations


class AppError(Exception):
    """Base application error with a stable machine-readable code."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        """Serialize the error in the API standard shape."""
        return {"error": self.message, "code": self.code}


class InsufficientFundsError(AppError):
    """Raised when an agent's balance cannot cover a gift."""

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            message="Insufficient funds.",
            code="INSUFFICIENT_FUNDS",
            status_code=402,
        )

    def to_dict(self) -> dict[str, str]:
        payload = super().to_dict()
        payload["required_cents"] = str(self.required)
        payload["available_cents"] = str(self.available)
        return payload


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str) -> None:
        super().__init__(message=f"{resource} not found", code="NOT_FOUND", status_code=404)


class ForbiddenError(AppError):
    """Raised when the user lacks permission for the action."""

    def __init__(self, reason: str = "You don't have permission") -> None:
        super().__init__(message=reason, code="FORBIDDEN", status_code=403)


class ConflictError(AppError):
    """Raised on duplicate/conflicting operations."""

    def __init__(self, reason: str, code: str = "CONFLICT") -> None:
        super().__init__(message=reason, code=code, status_code=409)


class ConcurrentUpdateError(ConflictError):
    """Raised when a balance kept changing under an optimistic update."""

    def __init__(self, reason: str = "Balance changed concurrently, please retry") -> None:
        super().__init__(reason, code="CONCURRENT_UPDATE")


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    def __init__(self, reason: str = "Unauthorized") -> None:
        super().__init__(message=reason, code="UNAUTHORIZED", status_code=401)


class InvalidInputError(AppError):
    """Raised for request payload or parameter validation issues."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="INVALID_INPUT", status_code=422)


class ConfigurationError(AppError):
    """Raised when a required integration is not configured on the server."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="CONFIGURATION_ERROR", status_code=503)


class ProviderError(AppError):
    """Base class for gift provider failures."""


class ProviderUnavailableError(ProviderError):
    """Raised on network errors, timeouts, or failed catalog reads."""

    def __init__(self, reason: str = "Gift provider is unavailable") -> None:
        super().__init__(message=reason, code="PROVIDER_UNAVAILABLE", status_code=503)


class ProviderRequestFailedError(ProviderError):
    """Raised when the gift provider rejects a request."""

    def __init__(self, provider_status: int | None, detail: str = "") -> None:
        self.provider_status = provider_status
        message = f"Giftbit API request failed with status {provider_status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message=message, code="PROVIDER_REQUEST_FAILED", status_code=502)
