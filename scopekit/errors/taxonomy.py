"""
errors/taxonomy.py - Error classification system

Module 2: Error Taxonomy

Every error raised inside a recoverable body is either classified into
exactly one ErrorCategory or left unrecognized (and propagated).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type
from datetime import datetime, timezone
from enum import Enum
import threading
import uuid


class ErrorCategory(Enum):
    """Categories of recoverable failure."""
    IO_FAILURE = "io_failure"
    VALIDATION_FAILURE = "validation_failure"
    NOT_FOUND = "not_found"
    RELEASE_FAILURE = "release_failure"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration"


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Error catalog with standard codes
ERROR_CATALOG: Dict[str, Dict[str, Any]] = {
    "ACQ-001": {
        "message": "Resource acquisition failed",
        "severity": ErrorSeverity.ERROR,
    },
    "IO-001": {
        "message": "I/O operation failed",
        "category": ErrorCategory.IO_FAILURE,
        "severity": ErrorSeverity.ERROR,
    },
    "VAL-001": {
        "message": "Validation failed",
        "category": ErrorCategory.VALIDATION_FAILURE,
        "severity": ErrorSeverity.ERROR,
    },
    "NF-001": {
        "message": "Required item not found",
        "category": ErrorCategory.NOT_FOUND,
        "severity": ErrorSeverity.ERROR,
    },
    "REL-001": {
        "message": "Resource release failed",
        "category": ErrorCategory.RELEASE_FAILURE,
        "severity": ErrorSeverity.WARNING,
    },
    "TMO-001": {
        "message": "Operation timed out",
        "category": ErrorCategory.TIMEOUT,
        "severity": ErrorSeverity.ERROR,
    },
    "CFG-001": {
        "message": "Invalid configuration",
        "category": ErrorCategory.CONFIGURATION,
        "severity": ErrorSeverity.CRITICAL,
    },
}


class ScopeKitError(Exception):
    """
    Base exception for scopekit.

    Subclasses pin a catalog code; the category and severity come from
    ERROR_CATALOG unless given explicitly.
    """

    code: str = ""

    def __init__(
        self,
        detail: str = "",
        *,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        template = ERROR_CATALOG.get(self.code, {})
        self.detail = detail or template.get("message", "")
        self.category = category or template.get("category")
        self.severity = severity or template.get("severity", ErrorSeverity.ERROR)
        self.context = context or {}
        self.error_id = str(uuid.uuid4())[:8]
        self.occurred_at = datetime.now(timezone.utc)
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code,
            "type": type(self).__name__,
            "detail": self.detail,
            "category": self.category.value if self.category else None,
            "severity": self.severity.value,
            "context": self.context,
            "cause": repr(self.__cause__) if self.__cause__ else None,
            "occurred_at": self.occurred_at.isoformat(),
        }


class AcquisitionError(ScopeKitError):
    """Acquiring a resource failed before any body ran. Never recoverable."""
    code = "ACQ-001"


class IOFailure(ScopeKitError):
    code = "IO-001"


class ValidationFailure(ScopeKitError):
    code = "VAL-001"


class NotFoundError(ScopeKitError):
    code = "NF-001"


class ReleaseError(ScopeKitError):
    """Releasing a resource failed."""
    code = "REL-001"


class TimeoutFailure(ScopeKitError):
    code = "TMO-001"


class ConfigurationError(ScopeKitError):
    code = "CFG-001"


# Default mapping for exceptions raised by the standard library and callers
# that do not use the scopekit hierarchy. Lookup walks the MRO, so the most
# specific registered type wins.
DEFAULT_CLASSIFICATION: Dict[Type[BaseException], ErrorCategory] = {
    FileNotFoundError: ErrorCategory.NOT_FOUND,
    KeyError: ErrorCategory.NOT_FOUND,
    LookupError: ErrorCategory.NOT_FOUND,
    TimeoutError: ErrorCategory.TIMEOUT,
    OSError: ErrorCategory.IO_FAILURE,
    ValueError: ErrorCategory.VALIDATION_FAILURE,
    TypeError: ErrorCategory.VALIDATION_FAILURE,
}


class ErrorClassifier:
    """
    Maps exceptions to at most one ErrorCategory.

    Exceptions that are not Exception subclasses (KeyboardInterrupt,
    SystemExit, GeneratorExit, cancellation) are never classified.
    AcquisitionError is never classified either.
    """

    def __init__(self, mapping: Optional[Dict[Type[BaseException], ErrorCategory]] = None):
        self._mapping: Dict[Type[BaseException], ErrorCategory] = dict(
            DEFAULT_CLASSIFICATION if mapping is None else mapping
        )
        self._lock = threading.Lock()

    def register(self, exc_type: Type[BaseException], category: ErrorCategory) -> None:
        """Register (or override) the category for an exception type."""
        if not (isinstance(exc_type, type) and issubclass(exc_type, Exception)):
            raise TypeError(f"Only Exception subclasses can be classified, got {exc_type!r}")
        with self._lock:
            self._mapping[exc_type] = category

    def unregister(self, exc_type: Type[BaseException]) -> None:
        with self._lock:
            self._mapping.pop(exc_type, None)

    def classify(self, exc: BaseException) -> Optional[ErrorCategory]:
        """Return the category for exc, or None if it is unrecognized."""
        if not isinstance(exc, Exception):
            return None
        if isinstance(exc, AcquisitionError):
            return None
        if isinstance(exc, ScopeKitError):
            return exc.category

        with self._lock:
            for klass in type(exc).__mro__:
                if klass in self._mapping:
                    return self._mapping[klass]
        return None


default_classifier = ErrorClassifier()


def classify(exc: BaseException) -> Optional[ErrorCategory]:
    """Classify with the module-level default classifier."""
    return default_classifier.classify(exc)


def create_error(code: str, detail: str = "", **kwargs) -> ScopeKitError:
    """Create an error instance from a catalog code."""
    for klass in (AcquisitionError, IOFailure, ValidationFailure, NotFoundError,
                  ReleaseError, TimeoutFailure, ConfigurationError):
        if klass.code == code:
            return klass(detail, **kwargs)

    error = ScopeKitError(detail or f"Unknown error: {code}", **kwargs)
    error.code = code
    return error
