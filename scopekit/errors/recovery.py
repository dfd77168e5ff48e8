"""
errors/recovery.py - Opt-in error recovery

Module 2: Error Taxonomy & Recovery

A body runs once under a declared set of ErrorCategory values. Errors in a
declared category come back as a Recovered outcome; everything else
propagates unchanged. There is no blanket recovery and no retry.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Union
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
import logging
import threading
import uuid

from .taxonomy import ErrorCategory, ErrorClassifier, ScopeKitError, default_classifier

logger = logging.getLogger(__name__)


class OperationState(Enum):
    """Lifecycle of a single run() invocation."""
    PENDING = "pending"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    RECOVERED = "recovered"
    PROPAGATED = "propagated"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.SUCCEEDED, OperationState.RECOVERED, OperationState.PROPAGATED)


VALID_TRANSITIONS: Dict[OperationState, FrozenSet[OperationState]] = {
    OperationState.PENDING: frozenset({OperationState.EXECUTING}),
    OperationState.EXECUTING: frozenset({
        OperationState.SUCCEEDED,
        OperationState.RECOVERED,
        OperationState.PROPAGATED,
    }),
    OperationState.SUCCEEDED: frozenset(),
    OperationState.RECOVERED: frozenset(),
    OperationState.PROPAGATED: frozenset(),
}


class Outcome(ABC):
    """Result of a recoverable operation: Success or Recovered."""

    succeeded: bool = False

    @abstractmethod
    def unwrap(self) -> Any:
        """Return the value, or re-raise the recovered error."""
        pass


@dataclass(frozen=True)
class Success(Outcome):
    """Body completed without raising."""

    value: Any = None

    succeeded = True

    def unwrap(self) -> Any:
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        return {"outcome": "success", "value": self.value}


@dataclass(frozen=True)
class Recovered(Outcome):
    """Body raised an error in a declared category."""

    category: ErrorCategory
    detail: str = ""
    error: Optional[BaseException] = field(default=None, compare=False, repr=False)

    succeeded = False

    def unwrap(self) -> Any:
        """Re-raise the recovered error for callers that want it back."""
        if self.error is not None:
            raise self.error
        raise ScopeKitError(self.detail, category=self.category)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": "recovered",
            "category": self.category.value,
            "detail": self.detail,
            "error_type": type(self.error).__name__ if self.error is not None else None,
        }


@dataclass
class OperationRecord:
    """Audit record of one run() invocation."""

    operation_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    name: str = ""

    state: OperationState = OperationState.PENDING
    declared: FrozenSet[ErrorCategory] = frozenset()

    category: Optional[ErrorCategory] = None
    error_type: str = ""
    detail: str = ""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def transition(self, new_state: OperationState) -> None:
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid operation transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        if new_state.is_terminal:
            self.completed_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "name": self.name,
            "state": self.state.value,
            "declared": sorted(c.value for c in self.declared),
            "category": self.category.value if self.category else None,
            "error_type": self.error_type,
            "detail": self.detail,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


CategorySpec = Union[ErrorCategory, Iterable[ErrorCategory]]


def normalize_categories(declared: CategorySpec) -> FrozenSet[ErrorCategory]:
    """Turn a category or iterable of categories into a frozenset."""
    if isinstance(declared, ErrorCategory):
        return frozenset({declared})
    if declared is None or isinstance(declared, (str, bytes)):
        raise TypeError(f"declared categories must be ErrorCategory values, got {declared!r}")

    categories = frozenset(declared)
    for category in categories:
        if not isinstance(category, ErrorCategory):
            raise TypeError(f"Not an ErrorCategory: {category!r}")
    return categories


def error_detail(exc: BaseException) -> str:
    if isinstance(exc, ScopeKitError):
        return exc.detail
    return str(exc) or type(exc).__name__


class RecoverableOperation:
    """
    Runs bodies under a declared set of recoverable categories.

    One instance can be shared by many call sites; only its history is
    shared state and that is guarded by a lock.
    """

    def __init__(
        self,
        classifier: Optional[ErrorClassifier] = None,
        max_history: int = 100,
        log_recovered: bool = True,
    ):
        if max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")
        self.classifier = classifier or default_classifier
        self.log_recovered = log_recovered
        self._max_history = max_history
        self._history: List[OperationRecord] = []
        self._lock = threading.Lock()

    def run(
        self,
        declared_categories: CategorySpec,
        body: Callable[[], Any],
        name: str = "",
    ) -> Outcome:
        """
        Execute body once.

        Args:
            declared_categories: Categories to convert into Recovered outcomes
            body: Zero-argument callable
            name: Optional label for the history record

        Returns:
            Success(value) or Recovered(category, detail)

        Raises:
            Whatever body raised, unchanged, if its category is not declared
        """
        record = self.begin(declared_categories, name=name or getattr(body, "__name__", ""))
        try:
            value = body()
        except BaseException as exc:
            outcome = self.settle_error(record, exc)
            if outcome is None:
                raise
            return outcome
        return self.settle_success(record, value)

    def begin(self, declared_categories: CategorySpec, name: str = "") -> OperationRecord:
        """Create a record for a new invocation and move it to EXECUTING."""
        record = OperationRecord(name=name, declared=normalize_categories(declared_categories))
        record.transition(OperationState.EXECUTING)
        return record

    def settle_success(self, record: OperationRecord, value: Any) -> Success:
        record.transition(OperationState.SUCCEEDED)
        self._add_to_history(record)
        return Success(value)

    def settle_error(self, record: OperationRecord, exc: BaseException) -> Optional[Recovered]:
        """
        Classify exc against the record's declared categories.

        Returns a Recovered outcome, or None when the caller must re-raise.
        """
        category = self.classifier.classify(exc)
        record.error_type = type(exc).__name__
        record.detail = error_detail(exc)
        record.category = category

        if category is not None and category in record.declared:
            record.transition(OperationState.RECOVERED)
            self._add_to_history(record)
            if self.log_recovered:
                logger.info(
                    f"Operation {record.operation_id} ({record.name}) recovered "
                    f"{category.value}: {record.detail}"
                )
            return Recovered(category=category, detail=record.detail, error=exc)

        record.transition(OperationState.PROPAGATED)
        self._add_to_history(record)
        logger.debug(
            f"Operation {record.operation_id} ({record.name}) propagating {record.error_type}"
        )
        return None

    def _add_to_history(self, record: OperationRecord) -> None:
        with self._lock:
            self._history.append(record)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]

    def get_history(self, limit: int = 20) -> List[OperationRecord]:
        """Get the most recent operation records."""
        with self._lock:
            return self._history[-limit:]

    def get_summary(self) -> Dict[str, Any]:
        """Counts of recorded invocations by terminal state and category."""
        with self._lock:
            history = list(self._history)

        by_state = {}
        for state in (OperationState.SUCCEEDED, OperationState.RECOVERED, OperationState.PROPAGATED):
            by_state[state.value] = len([r for r in history if r.state == state])

        by_category = {}
        for category in ErrorCategory:
            count = len([r for r in history if r.category == category])
            if count:
                by_category[category.value] = count

        return {
            "total": len(history),
            "by_state": by_state,
            "by_category": by_category,
        }

    def clear(self) -> None:
        with self._lock:
            self._history = []


# === SHARED RESCUE WRAPPERS ===

_default_operation = RecoverableOperation()


def run(declared_categories: CategorySpec, body: Callable[[], Any]) -> Outcome:
    """Run body with the module-level RecoverableOperation."""
    return _default_operation.run(declared_categories, body)


def recoverable(*categories: ErrorCategory, operation: Optional[RecoverableOperation] = None):
    """
    Decorator: the wrapped function returns an Outcome instead of raising
    errors in the given categories.

    Usage:
        @recoverable(ErrorCategory.IO_FAILURE)
        def load():
            ...

        outcome = load()
    """
    declared = normalize_categories(categories)

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs) -> Outcome:
            runner = operation or _default_operation
            return runner.run(declared, lambda: func(*args, **kwargs), name=func.__name__)
        return wrapper
    return decorator


class RecoveryGuard:
    """
    Context manager that absorbs only declared categories.

    Usage:
        with RecoveryGuard(ErrorCategory.IO_FAILURE) as guard:
            something_that_might_fail()

        if not guard.outcome.succeeded:
            ...

    The block's return value is not captured, so a clean exit yields
    Success(None).
    """

    def __init__(
        self,
        *categories: ErrorCategory,
        operation: Optional[RecoverableOperation] = None,
        name: str = "guard",
    ):
        self.declared = normalize_categories(categories)
        self.operation = operation or _default_operation
        self.name = name
        self.outcome: Optional[Outcome] = None
        self._record: Optional[OperationRecord] = None

    def __enter__(self) -> "RecoveryGuard":
        if self._record is not None:
            raise RuntimeError("RecoveryGuard is single-use")
        self._record = self.operation.begin(self.declared, name=self.name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            self.outcome = self.operation.settle_success(self._record, None)
            return False

        recovered = self.operation.settle_error(self._record, exc_val)
        if recovered is None:
            return False
        self.outcome = recovered
        return True
