"""
bootstrap/ - Bootstrap Layer (Module 3)

Configuration, logging setup and wiring of the core components.
"""

from .config import (
    ScopeKitConfig,
    ResourceConfig,
    RecoveryConfig,
    LoggingConfig,
    ConfigFile,
    load_config,
    get_config,
    reset_config,
)

from .log_setup import (
    JSONFormatter,
    setup_logging,
    setup_logging_from_config,
)

from .app import (
    AppState,
    AppContext,
    ScopeKitApp,
    create_app,
)


__all__ = [
    # Config
    "ScopeKitConfig",
    "ResourceConfig",
    "RecoveryConfig",
    "LoggingConfig",
    "ConfigFile",
    "load_config",
    "get_config",
    "reset_config",
    # Logging
    "JSONFormatter",
    "setup_logging",
    "setup_logging_from_config",
    # App
    "AppState",
    "AppContext",
    "ScopeKitApp",
    "create_app",
]
