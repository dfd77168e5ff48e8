"""
resources/manager.py - Scoped acquisition with guaranteed release

Module 1: Scoped Resources

open -> use -> always close, for any acquire/release pair.
"""

from __future__ import annotations
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar, TYPE_CHECKING
import logging
import threading

from .schemas import Resource, ResourceSpec, ResourceState, ReleaseFn
from ..errors.taxonomy import AcquisitionError, ReleaseError
from ..errors.channel import ReleaseWarning, WarningChannel

if TYPE_CHECKING:
    from ..bootstrap.config import ScopeKitConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _close_handle(handle: Any) -> None:
    handle.close()


def _resolve_release_fn(handle: Any, release_fn: Optional[ReleaseFn]) -> Optional[ReleaseFn]:
    """Explicit release function, else the handle's own close()."""
    if release_fn is not None:
        return release_fn
    if callable(getattr(handle, "close", None)):
        return _close_handle
    return None


class ScopedResource:
    """
    Acquires resources and guarantees each is released exactly once.

    The body's outcome always wins over a release failure. Release failures
    are reported on the warning channel; when the body succeeded they are
    raised as ReleaseError unless raise_on_release_failure is False.
    """

    def __init__(
        self,
        warnings: Optional[WarningChannel] = None,
        max_history: int = 100,
        raise_on_release_failure: bool = True,
    ):
        """
        Initialize resource manager.

        Args:
            warnings: Channel for release failures (a private one if omitted)
            max_history: Number of released resources kept for inspection
            raise_on_release_failure: Raise ReleaseError when release fails
                after a successful body. False opts out of propagating
                that failure: it is only recorded on the warning channel
                and the body's value is returned
        """
        if max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")

        self.warnings = warnings or WarningChannel()
        self.raise_on_release_failure = raise_on_release_failure

        self._active: Dict[str, Resource] = {}
        self._history: List[Resource] = []
        self._max_history = max_history
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: "ScopeKitConfig",
        warnings: Optional[WarningChannel] = None,
    ) -> "ScopedResource":
        return cls(
            warnings=warnings,
            max_history=config.resources.max_history,
            raise_on_release_failure=config.resources.raise_on_release_failure,
        )

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def acquire(
        self,
        acquisition_fn: Callable[[], Any],
        release_fn: Optional[ReleaseFn] = None,
        name: str = "",
    ) -> Resource:
        """
        Acquire a resource.

        Args:
            acquisition_fn: Returns an open handle or raises
            release_fn: Releases the handle (defaults to handle.close())
            name: Label used in logs and warnings

        Returns:
            The open Resource

        Raises:
            AcquisitionError: If acquisition_fn raised, returned None or a
                closed handle, or no way to release the handle exists
        """
        label = name or getattr(acquisition_fn, "__name__", "resource")

        try:
            handle = acquisition_fn()
        except Exception as e:
            logger.debug(f"Acquisition of {label} failed: {e!r}")
            raise AcquisitionError(
                f"Acquiring {label} failed: {e}",
                context={"resource": label, "cause_type": type(e).__name__},
            ) from e

        if handle is None:
            raise AcquisitionError(
                f"Acquiring {label} returned no handle",
                context={"resource": label},
            )

        if getattr(handle, "closed", False) is True:
            raise AcquisitionError(
                f"Acquiring {label} returned a closed handle",
                context={"resource": label},
            )

        closer = _resolve_release_fn(handle, release_fn)
        if closer is None:
            raise AcquisitionError(
                f"No release function for {label} and handle has no close()",
                context={"resource": label, "handle_type": type(handle).__name__},
            )

        resource = Resource(handle=handle, name=label, release_fn=closer)

        with self._lock:
            self._active[resource.resource_id] = resource

        logger.debug(f"Resource {resource.resource_id} ({label}) acquired")
        return resource

    def release(self, resource: Resource) -> bool:
        """
        Release a resource. Idempotent. Release failures are reported on
        the warning channel, not raised; only cancellation propagates.

        Returns:
            True if this call released the resource, False if it was
            already released
        """
        released, _ = self._release(resource, primary=None)
        return released

    def _release(
        self,
        resource: Resource,
        primary: Optional[BaseException],
    ) -> "tuple[bool, Optional[BaseException]]":
        """
        Release and report; returns (released_now, release_failure).

        A release failure is recorded on the warning channel. While a
        primary error is pending every failure is absorbed, cancellation
        included. Otherwise only cancellation (a non-Exception
        BaseException) is raised from here.
        """
        failure: Optional[BaseException] = None
        try:
            released = resource.release()
        except BaseException as e:
            released = True
            failure = e
            self.warnings.report(ReleaseWarning(
                resource_id=resource.resource_id,
                resource_name=resource.name,
                error_type=type(e).__name__,
                message=str(e),
                primary_pending=primary is not None,
                primary_error_type=type(primary).__name__ if primary is not None else "",
                error=e,
            ))
            if primary is None and not isinstance(e, Exception):
                self._retire(resource)
                raise

        if released:
            self._retire(resource)
            if failure is None:
                logger.debug(f"Resource {resource.resource_id} ({resource.name}) released")

        return released, failure

    def _retire(self, resource: Resource) -> None:
        """Move a resource from active to the bounded history."""
        with self._lock:
            self._active.pop(resource.resource_id, None)
            self._history.append(resource)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]

    @contextmanager
    def scope(
        self,
        acquisition_fn: Callable[[], Any],
        release_fn: Optional[ReleaseFn] = None,
        name: str = "",
    ) -> Iterator[Any]:
        """
        Context manager form of with_resource. Yields the handle.

        Usage:
            with manager.scope(lambda: open("data.txt")) as f:
                f.read()
        """
        resource = self.acquire(acquisition_fn, release_fn, name)
        primary: Optional[BaseException] = None
        try:
            yield resource.handle
        except BaseException as e:
            primary = e
            raise
        finally:
            _, failure = self._release(resource, primary)
            if failure is not None and primary is None and self.raise_on_release_failure:
                raise ReleaseError(
                    f"Releasing {resource.name} failed: {failure}",
                    context={"resource": resource.name, "resource_id": resource.resource_id},
                ) from failure

    def with_resource(
        self,
        acquisition_fn: Callable[[], Any],
        body: Callable[[Any], T],
        release_fn: Optional[ReleaseFn] = None,
        name: str = "",
    ) -> T:
        """
        Acquire, run body(handle), release exactly once.

        Returns:
            Whatever body returned

        Raises:
            AcquisitionError: Acquisition failed; body never ran
            ReleaseError: Body succeeded but release failed
            Anything body raised, unchanged
        """
        with self.scope(acquisition_fn, release_fn, name) as handle:
            return body(handle)

    def using(self, spec: ResourceSpec, body: Callable[[Any], T]) -> T:
        """Run body against a ResourceSpec."""
        if spec.acquire is None:
            raise TypeError(f"ResourceSpec {spec.name!r} has no acquire function")
        return self.with_resource(spec.acquire, body, release_fn=spec.release, name=spec.name)

    def get_active(self) -> List[Resource]:
        with self._lock:
            return list(self._active.values())

    def get_history(self, limit: int = 20) -> List[Resource]:
        """Get recently released resources."""
        with self._lock:
            return self._history[-limit:]

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            history = list(self._history)
            active = len(self._active)

        return {
            "active": active,
            "released": len([r for r in history if r.state == ResourceState.RELEASED]),
            "release_failed": len([r for r in history if r.state == ResourceState.RELEASE_FAILED]),
            "warnings": self.warnings.get_summary()["total"],
        }


# === MODULE-LEVEL HELPERS ===

_default_manager = ScopedResource()


def acquire(acquisition_fn: Callable[[], Any], release_fn: Optional[ReleaseFn] = None, name: str = "") -> Resource:
    return _default_manager.acquire(acquisition_fn, release_fn, name)


def release(resource: Resource) -> bool:
    return _default_manager.release(resource)


def with_resource(
    acquisition_fn: Callable[[], Any],
    body: Callable[[Any], T],
    release_fn: Optional[ReleaseFn] = None,
    name: str = "",
) -> T:
    """with_resource on the module-level ScopedResource."""
    return _default_manager.with_resource(acquisition_fn, body, release_fn, name)


def scoped(spec: ResourceSpec, manager: Optional[ScopedResource] = None):
    """
    Decorator: acquire spec around each call and pass the handle as the
    first argument.

    Usage:
        @scoped(file_handle("report.txt", "w"))
        def write_report(fh, lines):
            fh.writelines(lines)
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            owner = manager or _default_manager
            return owner.using(spec, lambda handle: func(handle, *args, **kwargs))
        return wrapper
    return decorator
