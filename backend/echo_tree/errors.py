"""Error kinds raised by the trust services.

Each error carries the HTTP status the API boundary answers with; the
handlers registered in ``main`` turn them into ``{"detail": ...}`` bodies.
"""
from __future__ import annotations

from typing import Any, Dict

from fastapi import status


class TrustEngineError(Exception):
    """Base class for every expected failure of the engine."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def payload(self) -> Dict[str, Any]:
        return {"detail": self.detail}


class ValidationError(TrustEngineError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class Unauthenticated(TrustEngineError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class InvalidCredentials(Unauthenticated):
    default_detail = "Invalid credentials"


class SessionExpired(Unauthenticated):
    default_detail = "Session expired"


class Forbidden(TrustEngineError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class NotFound(TrustEngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class SessionNotFound(NotFound):
    default_detail = "Session not found"


class Conflict(TrustEngineError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class _Timed:
    """Mixin for errors that tell the caller how long to wait."""

    minutes_left: int

    def payload(self) -> Dict[str, Any]:
        return {"detail": self.detail, "minutes_left": self.minutes_left}


class AlreadyPassed(Conflict):
    default_detail = "You have already passed the quiz"


class RetakeCooldown(_Timed, Conflict):
    def __init__(self, minutes_left: int) -> None:
        self.minutes_left = minutes_left
        super().__init__(f"You can retake the quiz in {minutes_left} minutes")


class AccountLocked(_Timed, TrustEngineError):
    status_code = status.HTTP_423_LOCKED

    def __init__(self, minutes_left: int) -> None:
        self.minutes_left = minutes_left
        super().__init__(
            f"Account is locked. Please try again in {minutes_left} minutes."
        )


class HarmfulContent(TrustEngineError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__("Content contains harmful material and cannot be posted")

    def payload(self) -> Dict[str, Any]:
        return {"detail": self.detail, "reason": self.reason}
