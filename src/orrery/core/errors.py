"""Error types raised and recovered inside the orrery engine."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


class OrreryError(Exception):
    """Base class for engine errors.

    ``recoverable`` errors are handled where they occur and never reach the
    frame loop.
    """

    def __init__(
        self,
        message: str,
        *,
        context: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = dict(context or {})
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": str(self),
            "context": self.context,
            "recoverable": self.recoverable,
        }


class OracleFailure(OrreryError):
    """The ephemeris oracle could not produce a position."""

    def __init__(self, body: str, instant: datetime, cause: BaseException) -> None:
        super().__init__(
            f"Failed to resolve {body} at {instant.isoformat()}: {cause}",
            context={"body": body, "instant": instant.isoformat(), "cause": repr(cause)},
        )
        self.body = body
        self.instant = instant
        self.__cause__ = cause


class CapabilityProbeFailure(OrreryError):
    """A host capability probe raised or did not answer in time."""

    def __init__(self, probe: str, reason: str) -> None:
        super().__init__(
            f"Capability probe '{probe}' failed: {reason}",
            context={"probe": probe, "reason": reason},
        )
        self.probe = probe


class ValidationError(OrreryError):
    def __init__(self, message: str, *, field: str, value: Any) -> None:
        super().__init__(message, context={"field": field, "value": repr(value)})
        self.field = field
        self.value = value


__all__ = [
    "CapabilityProbeFailure",
    "OracleFailure",
    "OrreryError",
    "ValidationError",
]
