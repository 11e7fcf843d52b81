"""Tests for Registry ordering and identity-based removal."""

from conftest import ChildEvent, ParentEvent, Ping, Pong

from raiser.registry import Registry


def _noop(event) -> None: ...


class TestRegistryOrdering:
    def test_empty_type_yields_empty_list(self):
        """Unknown event type resolves to no handlers."""
        assert Registry().handlers(Ping) == []

    def test_priority_descending(self):
        """Higher priority sorts first."""
        reg = Registry()
        reg.add_handler(Ping, _noop, 0, "zero")
        reg.add_handler(Ping, _noop, 10, "ten")
        reg.add_handler(Ping, _noop, -5, "minus")
        assert [e.name for e in reg.handlers(Ping)] == ["ten", "zero", "minus"]

    def test_ties_keep_registration_order(self):
        """Equal priorities keep registration order."""
        reg = Registry()
        for name in "abcde":
            reg.add_handler(Ping, _noop, 1, name)
        assert [e.name for e in reg.handlers(Ping)] == list("abcde")

    def test_extreme_priorities(self):
        """Extreme and arbitrary-size integers order correctly."""
        reg = Registry()
        reg.add_handler(Ping, _noop, 0, "zero")
        reg.add_handler(Ping, _noop, -(2**63), "min")
        reg.add_handler(Ping, _noop, 2**63 - 1, "max")
        reg.add_handler(Ping, _noop, 10**30, "huge")
        assert [e.name for e in reg.handlers(Ping)] == ["huge", "max", "zero", "min"]

    def test_sequence_strictly_increasing(self):
        """Sequence numbers reflect registration order across kinds."""
        reg = Registry()
        a = reg.add_handler(Ping, _noop, 0, "a")
        m = reg.add_middleware(lambda e, n: None, 0, "m")
        b = reg.add_handler(Pong, _noop, 0, "b")
        assert a.sequence < m.sequence < b.sequence

    def test_exact_type_only(self):
        """Handlers of a base class are not returned for a subclass."""
        reg = Registry()
        reg.add_handler(ParentEvent, _noop, 0, "parent")
        assert reg.handlers(ChildEvent) == []
        assert len(reg.handlers(ParentEvent)) == 1

    def test_middleware_ordering(self):
        """Middleware snapshot is sorted outermost first."""
        reg = Registry()
        reg.add_middleware(lambda e, n: None, -10, "low")
        reg.add_middleware(lambda e, n: None, 100, "high")
        reg.add_middleware(lambda e, n: None, 50, "mid")
        reg.add_middleware(lambda e, n: None, 50, "mid2")
        assert [e.name for e in reg.middleware()] == ["high", "mid", "mid2", "low"]


class TestRegistrySnapshots:
    def test_handlers_returns_copy(self):
        """Mutating the registry does not alter an earlier snapshot."""
        reg = Registry()
        first = reg.add_handler(Ping, _noop, 0, "first")
        snapshot = reg.handlers(Ping)
        reg.add_handler(Ping, _noop, 0, "second")
        reg.remove_handler(first)
        assert [e.name for e in snapshot] == ["first"]
        assert [e.name for e in reg.handlers(Ping)] == ["second"]


class TestRegistryRemoval:
    def test_remove_by_identity(self):
        """Duplicate registrations of one callable are removed independently."""
        reg = Registry()
        a = reg.add_handler(Ping, _noop, 0, "same")
        b = reg.add_handler(Ping, _noop, 0, "same")
        reg.remove_handler(a)
        remaining = reg.handlers(Ping)
        assert len(remaining) == 1
        assert remaining[0] is b

    def test_remove_twice_is_harmless(self):
        """Removing an already removed entry is a no-op."""
        reg = Registry()
        a = reg.add_handler(Ping, _noop, 0, "a")
        reg.remove_handler(a)
        reg.remove_handler(a)
        assert reg.handler_count(Ping) == 0

    def test_remove_middleware_by_identity(self):
        """Only the given middleware entry is removed."""
        reg = Registry()

        def mw(e, n) -> None: ...

        a = reg.add_middleware(mw, 0, "mw")
        b = reg.add_middleware(mw, 0, "mw")
        reg.remove_middleware(a)
        assert reg.middleware() == [b]
        assert reg.middleware_count() == 1
