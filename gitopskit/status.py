"""Health status codes and their ordering."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class HealthStatusCode(str, Enum):
    """The health of a resource."""

    UNKNOWN = "Unknown"
    PROGRESSING = "Progressing"
    HEALTHY = "Healthy"
    SUSPENDED = "Suspended"
    DEGRADED = "Degraded"
    MISSING = "Missing"

    def __str__(self) -> str:
        return self.value


@dataclass
class HealthStatus:
    """The result of a health assessment."""

    status: HealthStatusCode
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        result: dict[str, Any] = {}
        if self.status:
            result["status"] = str(self.status)
        if self.message:
            result["message"] = self.message
        return result


class HealthCheckError(ValueError):
    """Raised when the health of a resource cannot be assessed."""


_HEALTH_ORDER = (
    HealthStatusCode.HEALTHY,
    HealthStatusCode.SUSPENDED,
    HealthStatusCode.PROGRESSING,
    HealthStatusCode.MISSING,
    HealthStatusCode.DEGRADED,
    HealthStatusCode.UNKNOWN,
)


def _rank(code: str) -> int:
    try:
        return _HEALTH_ORDER.index(code)
    except ValueError:
        return 0


def is_worse(current: str, new: str) -> bool:
    """Tell whether *new* is a worse health condition than *current*."""
    return _rank(new) > _rank(current)