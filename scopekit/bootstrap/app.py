"""
bootstrap/app.py - Wiring of the two components

Module 3: Bootstrap Layer

Builds a ScopedResource and a RecoverableOperation from one configuration,
sharing a single warning channel, and composes them:

    acquire -> run body under declared categories -> release -> classify
"""

from __future__ import annotations
from typing import Any, Callable, Optional
from dataclasses import dataclass, field
from enum import Enum
import logging

from .config import ScopeKitConfig, load_config
from .log_setup import setup_logging_from_config
from ..errors.channel import WarningChannel
from ..errors.recovery import CategorySpec, Outcome, RecoverableOperation
from ..resources.factories import temp_directory
from ..resources.manager import ScopedResource
from ..resources.schemas import ReleaseFn, ResourceSpec

logger = logging.getLogger(__name__)


class AppState(Enum):
    """Application lifecycle states."""
    CREATED = "created"
    READY = "ready"


@dataclass
class AppContext:
    """Runtime components built from configuration."""
    config: Optional[ScopeKitConfig] = None
    warnings: WarningChannel = field(default_factory=WarningChannel)
    resources: Optional[ScopedResource] = None
    operation: Optional[RecoverableOperation] = None
    state: AppState = AppState.CREATED


class ScopeKitApp:
    """
    Configured entry point.

    Usage:
        app = create_app()
        outcome = app.run_with_resource(
            {ErrorCategory.IO_FAILURE},
            lambda: open("data.txt"),
            lambda f: f.read(),
        )
    """

    def __init__(self, config_file: str = None, config: Optional[ScopeKitConfig] = None):
        self._config_file = config_file
        self._context = AppContext(config=config)

    @property
    def config(self) -> ScopeKitConfig:
        return self._context.config

    @property
    def resources(self) -> ScopedResource:
        self._require_built()
        return self._context.resources

    @property
    def operation(self) -> RecoverableOperation:
        self._require_built()
        return self._context.operation

    @property
    def warnings(self) -> WarningChannel:
        return self._context.warnings

    @property
    def is_built(self) -> bool:
        return self._context.state == AppState.READY

    def build(self, configure_logging: bool = False) -> "ScopeKitApp":
        if self._context.config is None:
            self._context.config = load_config(self._config_file)

        config = self._context.config
        if configure_logging:
            setup_logging_from_config(config.logging)

        self._context.resources = ScopedResource.from_config(config, warnings=self._context.warnings)
        self._context.operation = RecoverableOperation(
            max_history=config.recovery.max_history,
            log_recovered=config.recovery.log_recovered,
        )
        self._context.state = AppState.READY

        logger.info(f"scopekit ready: environment={config.environment}")
        return self

    def _require_built(self) -> None:
        if not self.is_built:
            raise RuntimeError("ScopeKitApp.build() has not been called")

    def run_with_resource(
        self,
        declared_categories: CategorySpec,
        acquisition_fn: Callable[[], Any],
        body: Callable[[Any], Any],
        release_fn: Optional[ReleaseFn] = None,
        name: str = "",
    ) -> Outcome:
        """
        Run body(handle) as a recoverable operation inside a resource scope.

        The resource is released before the outcome is classified, so a
        ReleaseError is recovered only if RELEASE_FAILURE is declared.
        AcquisitionError always propagates.
        """
        return self.operation.run(
            declared_categories,
            lambda: self.resources.with_resource(acquisition_fn, body, release_fn, name),
            name=name or getattr(body, "__name__", ""),
        )

    def run_using(self, declared_categories: CategorySpec, spec: ResourceSpec, body: Callable[[Any], Any]) -> Outcome:
        return self.operation.run(
            declared_categories,
            lambda: self.resources.using(spec, body),
            name=spec.name,
        )

    def temp_directory(self, chdir: bool = True) -> ResourceSpec:
        """temp_directory spec using the configured prefix."""
        return temp_directory(chdir=chdir, prefix=self.config.resources.temp_prefix)


def create_app(
    config_file: str = None,
    config: Optional[ScopeKitConfig] = None,
    configure_logging: bool = False,
) -> ScopeKitApp:
    """Create and build a ScopeKitApp."""
    return ScopeKitApp(config_file=config_file, config=config).build(configure_logging=configure_logging)
