"""
tests/unit/test_errors.py - Tests for Module 2 (Error Taxonomy & Recovery)

Tests:
- Error taxonomy and classification
- RecoverableOperation.run and its state machine
- recoverable decorator and RecoveryGuard
- Warning channel
"""

import pytest
from unittest.mock import MagicMock


# ============================================================================
# TAXONOMY
# ============================================================================

class TestErrorTaxonomy:
    """Test error taxonomy."""

    def test_error_category_enum(self):
        """Test ErrorCategory values."""
        from scopekit.errors.taxonomy import ErrorCategory

        assert ErrorCategory.IO_FAILURE.value == "io_failure"
        assert ErrorCategory.VALIDATION_FAILURE.value == "validation_failure"
        assert ErrorCategory.NOT_FOUND.value == "not_found"
        assert ErrorCategory.RELEASE_FAILURE.value == "release_failure"

    def test_catalog_defaults(self):
        """Test subclasses pick category and severity from the catalog."""
        from scopekit.errors.taxonomy import (
            IOFailure, ReleaseError, ConfigurationError, ErrorCategory, ErrorSeverity,
        )

        assert IOFailure().category == ErrorCategory.IO_FAILURE
        assert IOFailure().detail == "I/O operation failed"
        assert ReleaseError("x").severity == ErrorSeverity.WARNING
        assert ConfigurationError("x").severity == ErrorSeverity.CRITICAL

    def test_acquisition_error_has_no_category(self):
        """Test AcquisitionError carries no recoverable category."""
        from scopekit.errors.taxonomy import AcquisitionError

        assert AcquisitionError("nope").category is None

    def test_error_to_dict(self):
        """Test ScopeKitError serialization."""
        from scopekit.errors.taxonomy import NotFoundError

        try:
            try:
                {}["missing"]
            except KeyError as e:
                raise NotFoundError("user 7 missing", context={"id": 7}) from e
        except NotFoundError as err:
            d = err.to_dict()

        assert d["code"] == "NF-001"
        assert d["type"] == "NotFoundError"
        assert d["category"] == "not_found"
        assert d["context"] == {"id": 7}
        assert "KeyError" in d["cause"]
        assert len(d["error_id"]) == 8

    def test_create_error_from_catalog(self):
        """Test create_error factory."""
        from scopekit.errors.taxonomy import create_error, ValidationFailure, ScopeKitError

        err = create_error("VAL-001", "age must be positive")
        assert isinstance(err, ValidationFailure)
        assert str(err) == "age must be positive"

        unknown = create_error("XYZ-999")
        assert type(unknown) is ScopeKitError
        assert unknown.code == "XYZ-999"
        assert unknown.category is None


class TestClassifier:
    """Test ErrorClassifier."""

    def test_scopekit_errors_use_own_category(self):
        """Test hierarchy errors classify by their category."""
        from scopekit.errors.taxonomy import classify, IOFailure, ErrorCategory

        assert classify(IOFailure("x")) == ErrorCategory.IO_FAILURE

    def test_builtin_mapping(self):
        """Test default mapping of builtin exceptions."""
        from scopekit.errors.taxonomy import classify, ErrorCategory

        assert classify(OSError("x")) == ErrorCategory.IO_FAILURE
        assert classify(IOError("x")) == ErrorCategory.IO_FAILURE
        assert classify(ValueError("x")) == ErrorCategory.VALIDATION_FAILURE
        assert classify(KeyError("x")) == ErrorCategory.NOT_FOUND
        assert classify(IndexError(0)) == ErrorCategory.NOT_FOUND

    def test_most_specific_type_wins(self):
        """Test MRO lookup picks the nearest registered type."""
        from scopekit.errors.taxonomy import classify, ErrorCategory

        # FileNotFoundError is also an OSError
        assert classify(FileNotFoundError("x")) == ErrorCategory.NOT_FOUND
        # TimeoutError is also an OSError
        assert classify(TimeoutError("x")) == ErrorCategory.TIMEOUT
        assert classify(PermissionError("x")) == ErrorCategory.IO_FAILURE

    def test_unrecognized(self):
        """Test unregistered and non-Exception types are unrecognized."""
        from scopekit.errors.taxonomy import classify, AcquisitionError

        assert classify(RuntimeError("x")) is None
        assert classify(KeyboardInterrupt()) is None
        assert classify(SystemExit(1)) is None
        assert classify(AcquisitionError("x")) is None

    def test_register_custom_type(self):
        """Test registering an application exception."""
        from scopekit.errors.taxonomy import ErrorClassifier, ErrorCategory

        class QuotaExceeded(RuntimeError):
            pass

        classifier = ErrorClassifier()
        classifier.register(QuotaExceeded, ErrorCategory.TIMEOUT)

        assert classifier.classify(QuotaExceeded()) == ErrorCategory.TIMEOUT
        assert classifier.classify(RuntimeError()) is None

        classifier.unregister(QuotaExceeded)
        assert classifier.classify(QuotaExceeded()) is None

    def test_register_rejects_base_exceptions(self):
        """Test cancellation types cannot be registered."""
        from scopekit.errors.taxonomy import ErrorClassifier, ErrorCategory

        with pytest.raises(TypeError):
            ErrorClassifier().register(KeyboardInterrupt, ErrorCategory.IO_FAILURE)

    def test_empty_mapping(self):
        """Test classifier with no builtin mapping."""
        from scopekit.errors.taxonomy import ErrorClassifier, IOFailure, ErrorCategory

        classifier = ErrorClassifier(mapping={})

        assert classifier.classify(OSError()) is None
        assert classifier.classify(IOFailure()) == ErrorCategory.IO_FAILURE


# ============================================================================
# RECOVERABLE OPERATION
# ============================================================================

class TestRecoverableOperation:
    """Test RecoverableOperation.run."""

    def test_success(self, operation):
        """Test body value wrapped in Success."""
        from scopekit.errors.recovery import Success
        from scopekit.errors.taxonomy import ErrorCategory

        outcome = operation.run({ErrorCategory.IO_FAILURE}, lambda: 41 + 1)

        assert outcome == Success(42)
        assert outcome.succeeded is True
        assert outcome.unwrap() == 42

    def test_declared_category_recovered(self, operation):
        """Test declared category becomes Recovered."""
        from scopekit.errors.recovery import Recovered
        from scopekit.errors.taxonomy import ErrorCategory, IOFailure

        def body():
            raise IOFailure("disk full")

        outcome = operation.run({ErrorCategory.IO_FAILURE}, body)

        assert isinstance(outcome, Recovered)
        assert outcome.category == ErrorCategory.IO_FAILURE
        assert outcome.detail == "disk full"
        assert outcome.succeeded is False

    def test_builtin_error_recovered(self, operation):
        """Test builtin exceptions recovered via the classifier."""
        from scopekit.errors.taxonomy import ErrorCategory

        outcome = operation.run(ErrorCategory.NOT_FOUND, lambda: {}["absent"])

        assert outcome.category == ErrorCategory.NOT_FOUND
        assert "absent" in outcome.detail

    def test_undeclared_category_propagates_unchanged(self, operation):
        """Test undeclared category re-raises the same object."""
        from scopekit.errors.taxonomy import ErrorCategory, ValidationFailure

        original = ValidationFailure("bad")

        def body():
            raise original

        with pytest.raises(ValidationFailure) as exc_info:
            operation.run({ErrorCategory.IO_FAILURE}, body)

        assert exc_info.value is original

    def test_unrecognized_error_propagates(self, operation):
        """Test unclassifiable errors always propagate."""
        from scopekit.errors.taxonomy import ErrorCategory

        def body():
            raise RuntimeError("x")

        with pytest.raises(RuntimeError):
            operation.run(set(ErrorCategory), body)

    def test_acquisition_error_never_recovered(self, operation):
        """Test AcquisitionError propagates even with every category declared."""
        from scopekit.errors.taxonomy import AcquisitionError, ErrorCategory

        def body():
            raise AcquisitionError("could not connect")

        with pytest.raises(AcquisitionError):
            operation.run(set(ErrorCategory), body)

    def test_cancellation_propagates(self, operation):
        """Test KeyboardInterrupt is never recovered."""
        from scopekit.errors.taxonomy import ErrorCategory

        def body():
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            operation.run(set(ErrorCategory), body)

    def test_empty_declared_set(self, operation):
        """Test nothing is recovered with an empty declared set."""
        with pytest.raises(OSError):
            operation.run(set(), lambda: open("/definitely/not/here/x.txt"))

    def test_body_called_once(self, operation):
        """Test there is no retry."""
        from scopekit.errors.taxonomy import ErrorCategory

        body = MagicMock(side_effect=OSError("flaky"))

        operation.run({ErrorCategory.IO_FAILURE}, body)

        assert body.call_count == 1

    def test_invalid_declared_categories(self, operation):
        """Test declared categories are type-checked."""
        with pytest.raises(TypeError):
            operation.run({"io_failure"}, lambda: None)
        with pytest.raises(TypeError):
            operation.run("io_failure", lambda: None)

    def test_recovered_unwrap_reraises(self, operation):
        """Test Recovered.unwrap re-raises the original error."""
        from scopekit.errors.taxonomy import ErrorCategory

        original = ValueError("nope")

        def body():
            raise original

        outcome = operation.run({ErrorCategory.VALIDATION_FAILURE}, body)

        with pytest.raises(ValueError) as exc_info:
            outcome.unwrap()
        assert exc_info.value is original

    def test_outcome_to_dict(self, operation):
        """Test Outcome serialization."""
        from scopekit.errors.taxonomy import ErrorCategory

        def body():
            raise TimeoutError("slow")

        d = operation.run({ErrorCategory.TIMEOUT}, body).to_dict()

        assert d == {
            "outcome": "recovered",
            "category": "timeout",
            "detail": "slow",
            "error_type": "TimeoutError",
        }


class TestOperationStateMachine:
    """Test operation states and history."""

    def test_terminal_states(self):
        """Test terminal flags."""
        from scopekit.errors.recovery import OperationState

        assert OperationState.SUCCEEDED.is_terminal
        assert OperationState.RECOVERED.is_terminal
        assert OperationState.PROPAGATED.is_terminal
        assert not OperationState.PENDING.is_terminal
        assert not OperationState.EXECUTING.is_terminal

    def test_record_transitions(self):
        """Test valid and invalid transitions."""
        from scopekit.errors.recovery import OperationRecord, OperationState

        record = OperationRecord()
        assert record.state == OperationState.PENDING

        with pytest.raises(RuntimeError):
            record.transition(OperationState.SUCCEEDED)

        record.transition(OperationState.EXECUTING)
        record.transition(OperationState.RECOVERED)
        assert record.completed_at is not None

        with pytest.raises(RuntimeError):
            record.transition(OperationState.PENDING)
        with pytest.raises(RuntimeError):
            record.transition(OperationState.EXECUTING)

    def test_history_records_final_states(self, operation):
        """Test history holds one terminal record per run."""
        from scopekit.errors.recovery import OperationState
        from scopekit.errors.taxonomy import ErrorCategory

        def io_failure():
            raise OSError("device busy")

        operation.run({ErrorCategory.IO_FAILURE}, lambda: "ok", name="first")
        operation.run({ErrorCategory.IO_FAILURE}, io_failure, name="second")
        with pytest.raises(ZeroDivisionError):
            operation.run({ErrorCategory.IO_FAILURE}, lambda: 1 / 0, name="third")

        states = [r.state for r in operation.get_history()]
        assert states == [
            OperationState.SUCCEEDED,
            OperationState.RECOVERED,
            OperationState.PROPAGATED,
        ]

        summary = operation.get_summary()
        assert summary["total"] == 3
        assert summary["by_state"] == {"succeeded": 1, "recovered": 1, "propagated": 1}
        assert summary["by_category"] == {"io_failure": 1}

        second = operation.get_history()[1]
        assert second.name == "second"
        assert second.error_type == "OSError"

    def test_history_bounded(self):
        """Test history size limit."""
        from scopekit.errors.recovery import RecoverableOperation

        operation = RecoverableOperation(max_history=3)
        for i in range(10):
            operation.run(set(), lambda: i)

        assert len(operation.get_history(limit=50)) == 3

        operation.clear()
        assert operation.get_summary()["total"] == 0

    def test_history_size_must_be_positive(self):
        """Test max_history=0 is rejected instead of keeping everything."""
        from scopekit.errors.recovery import RecoverableOperation

        with pytest.raises(ValueError, match="max_history"):
            RecoverableOperation(max_history=0)

    def test_outcome_is_abstract(self):
        """Test the Outcome base cannot be instantiated."""
        from scopekit.errors.recovery import Outcome

        with pytest.raises(TypeError):
            Outcome()


# ============================================================================
# SHARED RESCUE WRAPPERS
# ============================================================================

class TestRecoverableDecorator:
    """Test recoverable decorator."""

    def test_decorated_success(self, operation):
        """Test decorated function returns Success."""
        from scopekit.errors.recovery import recoverable, Success
        from scopekit.errors.taxonomy import ErrorCategory

        @recoverable(ErrorCategory.IO_FAILURE, operation=operation)
        def add(a, b):
            return a + b

        assert add(2, b=3) == Success(5)
        assert add.__name__ == "add"
        assert operation.get_history()[-1].name == "add"

    def test_decorated_recovery_and_propagation(self, operation):
        """Test same wrapper recovers declared and propagates others."""
        from scopekit.errors.recovery import recoverable, Recovered
        from scopekit.errors.taxonomy import ErrorCategory

        @recoverable(ErrorCategory.IO_FAILURE, operation=operation)
        def fail_with(exc):
            raise exc

        assert isinstance(fail_with(IOError("read")), Recovered)
        with pytest.raises(ValueError):
            fail_with(ValueError("parse"))

    def test_module_level_run(self):
        """Test module-level run helper."""
        from scopekit.errors.recovery import run, Recovered
        from scopekit.errors.taxonomy import ErrorCategory, NotFoundError

        def body():
            raise NotFoundError("no row")

        outcome = run({ErrorCategory.NOT_FOUND}, body)
        assert isinstance(outcome, Recovered)
        assert outcome.detail == "no row"


class TestRecoveryGuard:
    """Test RecoveryGuard context manager."""

    def test_guard_clean_exit(self, operation):
        """Test clean block yields Success(None)."""
        from scopekit.errors.recovery import RecoveryGuard, Success
        from scopekit.errors.taxonomy import ErrorCategory

        with RecoveryGuard(ErrorCategory.IO_FAILURE, operation=operation) as guard:
            pass

        assert guard.outcome == Success(None)

    def test_guard_absorbs_declared(self, operation):
        """Test declared category is absorbed."""
        from scopekit.errors.recovery import RecoveryGuard
        from scopekit.errors.taxonomy import ErrorCategory

        with RecoveryGuard(ErrorCategory.IO_FAILURE, operation=operation) as guard:
            raise IOError("pipe closed")

        assert guard.outcome.category == ErrorCategory.IO_FAILURE
        assert guard.outcome.detail == "pipe closed"

    def test_guard_propagates_undeclared(self, operation):
        """Test undeclared category passes through."""
        from scopekit.errors.recovery import RecoveryGuard
        from scopekit.errors.taxonomy import ErrorCategory

        guard = RecoveryGuard(ErrorCategory.IO_FAILURE, operation=operation)
        with pytest.raises(KeyError):
            with guard:
                raise KeyError("k")

        assert guard.outcome is None

    def test_guard_single_use(self, operation):
        """Test guard cannot be re-entered."""
        from scopekit.errors.recovery import RecoveryGuard

        guard = RecoveryGuard(operation=operation)
        with guard:
            pass

        with pytest.raises(RuntimeError):
            with guard:
                pass


# ============================================================================
# WARNING CHANNEL
# ============================================================================

class TestWarningChannel:
    """Test release warning channel."""

    def test_report_and_filter(self):
        """Test warnings recorded and filtered by resource name."""
        from scopekit.errors.channel import WarningChannel, ReleaseWarning

        channel = WarningChannel()
        channel.report(ReleaseWarning(resource_name="db", error_type="OSError", message="a"))
        channel.report(ReleaseWarning(resource_name="file", error_type="OSError", message="b"))
        channel.report(ReleaseWarning(resource_name="db", error_type="OSError", message="c",
                                      primary_pending=True, primary_error_type="ValueError"))

        assert channel.has_warnings()
        assert len(channel.get_warnings("db")) == 2

        summary = channel.get_summary()
        assert summary == {"total": 3, "masked_by_primary": 1, "by_resource": {"db": 2, "file": 1}}

        channel.clear()
        assert not channel.has_warnings()

    def test_bounded(self):
        """Test channel keeps the most recent warnings."""
        from scopekit.errors.channel import WarningChannel, ReleaseWarning

        channel = WarningChannel(max_warnings=2)
        for i in range(4):
            channel.report(ReleaseWarning(resource_id=str(i)))

        assert [w.resource_id for w in channel.get_warnings()] == ["2", "3"]

    def test_size_must_be_positive(self):
        """Test max_warnings=0 is rejected."""
        from scopekit.errors.channel import WarningChannel

        with pytest.raises(ValueError, match="max_warnings"):
            WarningChannel(max_warnings=0)

    def test_report_logs_warning(self, caplog):
        """Test reporting logs at WARNING."""
        import logging
        from scopekit.errors.channel import WarningChannel, ReleaseWarning

        with caplog.at_level(logging.WARNING, logger="scopekit.errors.channel"):
            WarningChannel().report(ReleaseWarning(resource_name="sock", error_type="OSError", message="reset"))

        assert "sock" in caplog.text
        assert "reset" in caplog.text

    def test_warning_to_dict(self):
        """Test ReleaseWarning serialization."""
        from scopekit.errors.channel import ReleaseWarning

        d = ReleaseWarning(resource_id="abc", error_type="OSError").to_dict()

        assert d["resource_id"] == "abc"
        assert d["primary_pending"] is False
        assert d["occurred_at"] is not None
