"""Error taxonomy for the Road Trip planner.

Exceptions raised inside the pipeline, plus the ``AppError`` envelope the
API returns when a request cannot be served.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standardized error codes exposed to API clients."""

    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    PLANNING_FAILED = "PLANNING_FAILED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    API_ERROR = "API_ERROR"


class AppError(BaseModel):
    """Error payload returned in ``{"success": false, "error": ...}`` bodies."""

    code: ErrorCode
    message: str
    user_message: str = Field(..., description="Message safe to show to end users")


class RoadTripError(Exception):
    """Base class for planner errors."""

    code: ErrorCode = ErrorCode.API_ERROR
    user_message = "Something went wrong. Please try again."

    def to_app_error(self) -> AppError:
        return AppError(code=self.code, message=str(self), user_message=self.user_message)


class LocationNotFound(RoadTripError):
    """No coordinate could be found for a place name, live or static."""

    code = ErrorCode.LOCATION_NOT_FOUND

    def __init__(self, name: str, reason: Optional[str] = None) -> None:
        self.name = name
        self.reason = reason
        message = f'Location "{name}" not found'
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f'We could not find "{self.name}". Check the spelling and try again.'


class ProviderUnavailable(RoadTripError):
    """A single external provider failed or returned nothing usable.

    Always absorbed by the next fallback tier; never surfaced to callers.
    """

    code = ErrorCode.PROVIDER_UNAVAILABLE

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} unavailable: {reason}")


class PlanningFailed(RoadTripError):
    """Route and POI assembly failed on both the normal and coarse tiers."""

    code = ErrorCode.PLANNING_FAILED
    user_message = "Unable to plan route. Please check your connection and try again."

    def __init__(
        self,
        attempted_providers: list[str],
        cause: Optional[BaseException] = None,
    ) -> None:
        self.attempted_providers = list(attempted_providers)
        self.cause = cause
        chain = " -> ".join(self.attempted_providers) or "none"
        message = f"Route planning failed (providers tried: {chain})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
