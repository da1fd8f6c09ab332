"""
Remote Service Health

One-way circuit breaker for the remote language-understanding service.
The breaker starts closed (remote available) and opens permanently on the
first quota or rate-limit failure; it is never reset while the process
lives. A single instance is created at process start and injected into
whatever talks to the remote service.

Usage:
    from utils.circuit_breaker import get_service_health

    health = get_service_health()
    if health.remote_available:
        ...
    health.trip("insufficient_quota")
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from utils.logging import get_logger

logger = get_logger(__name__)

QUOTA_ERROR_CODES = {"insufficient_quota", "rate_limit_exceeded"}


@dataclass
class ServiceHealth:
    """
    Process-wide availability flag for the remote service.

    Tripping is idempotent and there is no reset.
    """
    name: str = "remote-nlp"

    remote_available: bool = field(default=True)
    tripped_at: Optional[datetime] = field(default=None)
    trip_reason: Optional[str] = field(default=None)
    skipped_calls: int = field(default=0)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def trip(self, reason: str) -> bool:
        """
        Mark the remote service unavailable.

        Returns:
            True if this call flipped the flag, False if already tripped.
        """
        with self._lock:
            if not self.remote_available:
                return False
            self.remote_available = False
            self.tripped_at = datetime.now()
            self.trip_reason = reason
        logger.warning(f"Circuit {self.name} opened permanently: {reason}")
        return True

    def record_skip(self, operation: str) -> None:
        """Count and log a call skipped because the breaker is open."""
        with self._lock:
            self.skipped_calls += 1
        logger.info(f"Skipping {operation}: {self.name} unavailable ({self.trip_reason})")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "remote_available": self.remote_available,
            "tripped_at": self.tripped_at.isoformat() if self.tripped_at else None,
            "trip_reason": self.trip_reason,
            "skipped_calls": self.skipped_calls,
        }


def is_quota_error(exc: BaseException) -> bool:
    """True for quota exhaustion or rate limiting (HTTP 429 / insufficient_quota)."""
    if getattr(exc, "status_code", None) == 429:
        return True
    code = getattr(exc, "code", None)
    if code in QUOTA_ERROR_CODES:
        return True
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("code") in QUOTA_ERROR_CODES:
            return True
    return False


_service_health: Optional[ServiceHealth] = None


def get_service_health() -> ServiceHealth:
    """Get the process-wide ServiceHealth, creating it on first use."""
    global _service_health
    if _service_health is None:
        _service_health = ServiceHealth()
    return _service_health
