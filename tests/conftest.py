"""
scopekit Test Configuration and Fixtures

Provides fake handles that count how often they are closed, and fresh
component instances per test.
"""

import pytest


class FakeHandle:
    """Handle that records close() calls and can be told to fail on close."""

    def __init__(self, name: str = "fake", fail_on_close: Exception = None):
        self.name = name
        self.close_calls = 0
        self.fail_on_close = fail_on_close

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def close(self) -> None:
        self.close_calls += 1
        if self.fail_on_close is not None:
            raise self.fail_on_close


class AcquisitionProbe:
    """Acquisition function that remembers every handle it handed out."""

    def __init__(self, fail_with: Exception = None, fail_on_close: Exception = None):
        self.fail_with = fail_with
        self.fail_on_close = fail_on_close
        self.handles = []

    def __call__(self) -> FakeHandle:
        if self.fail_with is not None:
            raise self.fail_with
        handle = FakeHandle(name=f"fake-{len(self.handles)}", fail_on_close=self.fail_on_close)
        self.handles.append(handle)
        return handle

    @property
    def total_closes(self) -> int:
        return sum(h.close_calls for h in self.handles)


@pytest.fixture
def probe():
    """Acquisition function producing well-behaved handles."""
    return AcquisitionProbe()


@pytest.fixture
def make_probe():
    """Factory for probes with failure behaviour."""
    return AcquisitionProbe


@pytest.fixture
def manager():
    """Fresh ScopedResource with its own warning channel."""
    from scopekit.resources.manager import ScopedResource

    return ScopedResource()


@pytest.fixture
def operation():
    """Fresh RecoverableOperation with the default classifier."""
    from scopekit.errors.recovery import RecoverableOperation

    return RecoverableOperation()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove SCOPEKIT_* variables and forget any loaded config."""
    import os
    from scopekit.bootstrap import config as config_module

    for key in list(os.environ):
        if key.startswith("SCOPEKIT_"):
            monkeypatch.delenv(key, raising=False)

    config_module.reset_config()
    yield monkeypatch
    config_module.reset_config()
