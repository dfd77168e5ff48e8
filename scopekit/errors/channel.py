"""
errors/channel.py - Side channel for secondary failures

Module 2: Error Taxonomy & Recovery

Release failures never replace the outcome of the body that used the
resource. They are reported here instead.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging
import threading

logger = logging.getLogger(__name__)


@dataclass
class ReleaseWarning:
    """A failure raised while releasing a resource."""

    resource_id: str = ""
    resource_name: str = ""

    error_type: str = ""
    message: str = ""

    # True when the body had already failed; the body's error won
    primary_pending: bool = False
    primary_error_type: str = ""

    error: Optional[BaseException] = field(default=None, repr=False, compare=False)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "error_type": self.error_type,
            "message": self.message,
            "primary_pending": self.primary_pending,
            "primary_error_type": self.primary_error_type,
            "occurred_at": self.occurred_at.isoformat() if self.occurred_at else None,
        }


class WarningChannel:
    """
    Collects release warnings from one or more scoped resource managers.
    """

    def __init__(self, max_warnings: int = 100):
        if max_warnings < 1:
            raise ValueError(f"max_warnings must be at least 1, got {max_warnings}")
        self._warnings: List[ReleaseWarning] = []
        self._max_warnings = max_warnings
        self._lock = threading.Lock()

    def report(self, warning: ReleaseWarning) -> None:
        """Record a warning and log it."""
        with self._lock:
            self._warnings.append(warning)
            if len(self._warnings) > self._max_warnings:
                self._warnings = self._warnings[-self._max_warnings:]

        if warning.primary_pending:
            logger.warning(
                f"Release of {warning.resource_name or warning.resource_id} failed "
                f"while {warning.primary_error_type} was pending: "
                f"{warning.error_type}: {warning.message}"
            )
        else:
            logger.warning(
                f"Release of {warning.resource_name or warning.resource_id} failed: "
                f"{warning.error_type}: {warning.message}"
            )

    def get_warnings(self, resource_name: Optional[str] = None) -> List[ReleaseWarning]:
        """Get recorded warnings, optionally for one resource name."""
        with self._lock:
            warnings = list(self._warnings)
        if resource_name is None:
            return warnings
        return [w for w in warnings if w.resource_name == resource_name]

    def has_warnings(self) -> bool:
        with self._lock:
            return bool(self._warnings)

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            warnings = list(self._warnings)

        by_resource: Dict[str, int] = {}
        for w in warnings:
            key = w.resource_name or w.resource_id
            by_resource[key] = by_resource.get(key, 0) + 1

        return {
            "total": len(warnings),
            "masked_by_primary": len([w for w in warnings if w.primary_pending]),
            "by_resource": by_resource,
        }

    def clear(self) -> None:
        with self._lock:
            self._warnings.clear()
