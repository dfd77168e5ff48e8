"""
resources/schemas.py - Scoped resource data structures

Module 1: Scoped Resources
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from datetime import datetime, timezone
from enum import Enum
import threading
import uuid


ReleaseFn = Callable[[Any], None]


class ResourceState(Enum):
    """Resource lifecycle states."""
    OPEN = "open"
    RELEASED = "released"
    RELEASE_FAILED = "release_failed"


@dataclass
class Resource:
    """
    An acquired handle plus the function that releases it.

    Owned by the ScopedResource that acquired it. release() runs the release
    function at most once; later calls are no-ops.
    """

    handle: Any = None
    name: str = ""
    resource_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    state: ResourceState = ResourceState.OPEN

    # Release bookkeeping
    release_count: int = 0
    release_attempts: int = 0
    release_error: Optional[BaseException] = field(default=None, repr=False)

    # Timing
    acquired_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    released_at: Optional[datetime] = None

    release_fn: Optional[ReleaseFn] = field(default=None, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def is_open(self) -> bool:
        return self.state == ResourceState.OPEN

    def release(self) -> bool:
        """
        Release the handle.

        Returns:
            True if this call performed the release, False if the resource
            was already released

        Raises:
            Whatever the release function raised. The resource is still
            marked released so it is never closed twice.
        """
        with self._lock:
            self.release_attempts += 1
            if self.state != ResourceState.OPEN:
                return False
            self.state = ResourceState.RELEASED
            self.release_count += 1
            self.released_at = datetime.now(timezone.utc)

        if self.release_fn is not None:
            try:
                self.release_fn(self.handle)
            except BaseException as e:
                self.state = ResourceState.RELEASE_FAILED
                self.release_error = e
                raise
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "name": self.name,
            "state": self.state.value,
            "is_open": self.is_open,
            "release_count": self.release_count,
            "release_attempts": self.release_attempts,
            "release_error": repr(self.release_error) if self.release_error else None,
            "acquired_at": self.acquired_at.isoformat() if self.acquired_at else None,
            "released_at": self.released_at.isoformat() if self.released_at else None,
        }


@dataclass
class ResourceSpec:
    """A named acquire/release pair."""

    name: str = ""
    acquire: Optional[Callable[[], Any]] = None
    release: Optional[ReleaseFn] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "has_release": self.release is not None,
        }
