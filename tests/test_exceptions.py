"""Tests for the raiser exception hierarchy."""

import pytest

from raiser import (
    AggregateHandlerError,
    CatalogError,
    EventValidationError,
    PluginEntryPointError,
    PluginError,
    PluginImportError,
    PluginNotFoundError,
    PluginVersionError,
    RaiserError,
)


class TestExceptionHierarchy:
    def test_base_is_exception(self):
        """RaiserError inherits from Exception."""
        assert issubclass(RaiserError, Exception)

    @pytest.mark.parametrize(
        ("exc_type", "builtin"),
        [
            (EventValidationError, ValueError),
            (CatalogError, TypeError),
            (AggregateHandlerError, ExceptionGroup),
        ],
    )
    def test_dual_inheritance(self, exc_type, builtin):
        """Library errors are also catchable by their builtin counterpart."""
        assert issubclass(exc_type, RaiserError)
        assert issubclass(exc_type, builtin)

    @pytest.mark.parametrize(
        "exc_type",
        [
            PluginNotFoundError,
            PluginVersionError,
            PluginEntryPointError,
            PluginImportError,
        ],
    )
    def test_plugin_errors(self, exc_type):
        """Plugin errors share PluginError."""
        assert issubclass(exc_type, PluginError)
        with pytest.raises(RaiserError):
            raise exc_type("x")


class TestAggregateHandlerError:
    def test_errors_and_tracebacks(self):
        """errors keeps order; tracebacks match errors one to one."""
        collected = []
        for message in ("first", "second"):
            try:
                raise ValueError(message)
            except ValueError as exc:
                collected.append(exc)
        agg = AggregateHandlerError("2 handler errors occurred", collected)
        assert agg.errors == collected
        assert agg.tracebacks == [e.__traceback__ for e in collected]
        assert agg.tracebacks[0] is not None

    def test_split_keeps_type(self):
        """Splitting the group yields the same aggregate type."""
        agg = AggregateHandlerError("x", [ValueError("a"), KeyError("b")])
        match, rest = agg.split(ValueError)
        assert isinstance(match, AggregateHandlerError)
        assert isinstance(rest, AggregateHandlerError)
        assert [type(e) for e in match.errors] == [ValueError]

    def test_caught_as_raiser_error(self):
        """The aggregate is catchable as RaiserError."""
        with pytest.raises(RaiserError):
            raise AggregateHandlerError("x", [ValueError("a")])
