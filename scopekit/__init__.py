"""
scopekit - Scoped resources and opt-in error recovery

- Module 1: Scoped Resources (resources/)
- Module 2: Error Taxonomy & Recovery (errors/)
- Module 3: Bootstrap Layer (bootstrap/)
"""

__version__ = "0.1.0"

# Module 2: Errors
from .errors import (
    ErrorCategory,
    ErrorSeverity,
    ScopeKitError,
    AcquisitionError,
    IOFailure,
    ValidationFailure,
    NotFoundError,
    ReleaseError,
    TimeoutFailure,
    ConfigurationError,
    ErrorClassifier,
    classify,
    OperationState,
    Outcome,
    Success,
    Recovered,
    RecoverableOperation,
    RecoveryGuard,
    recoverable,
    run,
    ReleaseWarning,
    WarningChannel,
)

# Module 1: Resources
from .resources import (
    ResourceState,
    Resource,
    ResourceSpec,
    ScopedResource,
    with_resource,
    scoped,
    file_handle,
    temp_directory,
)

from .utils import require_key, require_path


__all__ = [
    "__version__",
    # Errors
    "ErrorCategory",
    "ErrorSeverity",
    "ScopeKitError",
    "AcquisitionError",
    "IOFailure",
    "ValidationFailure",
    "NotFoundError",
    "ReleaseError",
    "TimeoutFailure",
    "ConfigurationError",
    "ErrorClassifier",
    "classify",
    "OperationState",
    "Outcome",
    "Success",
    "Recovered",
    "RecoverableOperation",
    "RecoveryGuard",
    "recoverable",
    "run",
    "ReleaseWarning",
    "WarningChannel",
    # Resources
    "ResourceState",
    "Resource",
    "ResourceSpec",
    "ScopedResource",
    "with_resource",
    "scoped",
    "file_handle",
    "temp_directory",
    # Utilities
    "require_key",
    "require_path",
]
