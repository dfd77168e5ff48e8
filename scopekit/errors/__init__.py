"""
errors/ - Error Taxonomy & Recovery

Module 2: Error Taxonomy & Recovery

Classifies exceptions into categories and turns declared categories into
Outcome values. Undeclared errors always propagate.
"""

from .taxonomy import (
    ErrorCategory,
    ErrorSeverity,
    ERROR_CATALOG,
    ScopeKitError,
    AcquisitionError,
    IOFailure,
    ValidationFailure,
    NotFoundError,
    ReleaseError,
    TimeoutFailure,
    ConfigurationError,
    ErrorClassifier,
    default_classifier,
    classify,
    create_error,
)

from .recovery import (
    OperationState,
    Outcome,
    Success,
    Recovered,
    OperationRecord,
    RecoverableOperation,
    RecoveryGuard,
    recoverable,
    run,
)

from .channel import (
    ReleaseWarning,
    WarningChannel,
)

__all__ = [
    # Taxonomy
    "ErrorCategory",
    "ErrorSeverity",
    "ERROR_CATALOG",
    "ScopeKitError",
    "AcquisitionError",
    "IOFailure",
    "ValidationFailure",
    "NotFoundError",
    "ReleaseError",
    "TimeoutFailure",
    "ConfigurationError",
    "ErrorClassifier",
    "default_classifier",
    "classify",
    "create_error",
    # Recovery
    "OperationState",
    "Outcome",
    "Success",
    "Recovered",
    "OperationRecord",
    "RecoverableOperation",
    "RecoveryGuard",
    "recoverable",
    "run",
    # Side channel
    "ReleaseWarning",
    "WarningChannel",
]
