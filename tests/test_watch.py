"""Tests for watch() — property-path observation on Watchable objects."""

import copy
import gc
from dataclasses import dataclass

import pytest

from pathbox import ConfigurationError, Watchable, notify, watch
from pathbox import _anchor
from pathbox.watch import parse_path


class Counter(Watchable):
    def __init__(self, count=0):
        self.count = count


class Outer(Watchable):
    def __init__(self, inner):
        self.inner = inner
        self.label = "outer"


@dataclass
class Point(Watchable):
    x: int
    y: int


class Plain:
    def __init__(self):
        self.count = 0


class TestParsePath:
    def test_simple(self):
        assert parse_path("count") == ("count",)

    def test_dotted(self):
        assert parse_path("a.b.c") == ("a", "b", "c")

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a.", "1a", "a-b"])
    def test_malformed(self, path):
        with pytest.raises(ConfigurationError, match="malformed"):
            parse_path(path)

    def test_not_a_string(self):
        with pytest.raises(ConfigurationError, match="must be a string"):
            parse_path(["count"])


class TestWatch:
    def test_assignment_fires(self):
        c = Counter()
        log = []
        watch(c, "count", lambda: log.append(c.count))
        c.count = 1
        c.count += 1
        assert log == [1, 2]

    def test_fires_after_assignment(self):
        """Callback observes the post-assignment value."""
        c = Counter(5)
        seen = []
        watch(c, "count", lambda: seen.append(c.count))
        c.count = 6
        assert seen == [6]

    def test_same_value_still_fires(self):
        c = Counter(1)
        log = []
        watch(c, "count", lambda: log.append(c.count))
        c.count = 1
        assert log == [1]

    def test_other_attribute_is_silent(self):
        o = Outer(Counter())
        log = []
        watch(o, "label", lambda: log.append("label"))
        o.inner = Counter()
        assert log == []

    def test_cancel_stops_callbacks(self):
        c = Counter()
        log = []
        handle = watch(c, "count", lambda: log.append(c.count))
        c.count = 1
        handle.cancel()
        c.count = 2
        assert log == [1]
        assert handle.cancelled

    def test_cancel_idempotent(self):
        handle = watch(Counter(), "count", lambda: None)
        handle.cancel()
        handle.cancel()  # should not raise

    def test_multiple_watchers_in_registration_order(self):
        c = Counter()
        order = []
        watch(c, "count", lambda: order.append("a"))
        watch(c, "count", lambda: order.append("b"))
        c.count = 1
        assert order == ["a", "b"]

    def test_cancel_sibling_during_notify(self):
        c = Counter()
        log = []
        handles = {}

        def first():
            handles["second"].cancel()

        watch(c, "count", first)
        handles["second"] = watch(c, "count", lambda: log.append("second"))
        c.count = 1
        assert log == []

    def test_dataclass_fields(self):
        p = Point(1, 2)
        log = []
        watch(p, "x", lambda: log.append(p.x))
        p.x = 10
        p.y = 20
        assert log == [10]

    def test_manual_notify(self):
        c = Counter()
        log = []
        watch(c, "count", lambda: log.append("changed"))
        notify(c, "count")
        assert log == ["changed"]

    def test_copy_does_not_inherit_listeners(self):
        c = Counter()
        log = []
        watch(c, "count", lambda: log.append("original"))
        clone = copy.copy(c)
        clone.count = 3
        assert log == []

    def test_listener_table_released_with_object(self):
        c = Counter()
        watch(c, "count", lambda: None)
        key = id(c)
        assert key in _anchor.listeners
        del c
        gc.collect()
        assert key not in _anchor.listeners


class TestResolution:
    def test_missing_attribute(self):
        with pytest.raises(ConfigurationError, match="no attribute 'missing'"):
            watch(Counter(), "missing", lambda: None)

    def test_not_watchable_root(self):
        with pytest.raises(ConfigurationError, match="Plain at <root> is not Watchable"):
            watch(Plain(), "count", lambda: None)

    def test_not_watchable_intermediate(self):
        o = Outer(Plain())
        with pytest.raises(ConfigurationError, match="Plain at inner is not Watchable"):
            watch(o, "inner.count", lambda: None)

    def test_none_intermediate(self):
        with pytest.raises(ConfigurationError, match="NoneType at inner"):
            watch(Outer(None), "inner.count", lambda: None)

    def test_non_strict_binds_through_none_intermediate(self):
        o = Outer(None)
        log = []
        watch(o, "inner.count", lambda: log.append("fired"), strict=False)
        o.inner = Counter()
        o.inner.count = 2
        assert log == ["fired", "fired"]

    def test_non_strict_still_requires_watchable_root(self):
        with pytest.raises(ConfigurationError, match="Plain is not Watchable"):
            watch(Plain(), "count", lambda: None, strict=False)

    def test_non_strict_still_rejects_malformed_path(self):
        with pytest.raises(ConfigurationError, match="malformed"):
            watch(Counter(), "a..b", lambda: None, strict=False)

    def test_failed_resolution_registers_nothing(self):
        c = Counter()
        with pytest.raises(ConfigurationError):
            watch(c, "count.real", lambda: None)
        assert not _anchor.listeners.get(id(c))


class TestNestedPath:
    def test_leaf_assignment_fires(self):
        o = Outer(Counter())
        log = []
        watch(o, "inner.count", lambda: log.append(o.inner.count))
        o.inner.count = 4
        assert log == [4]

    def test_intermediate_replacement_fires_and_rebinds(self):
        old = Counter()
        o = Outer(old)
        log = []
        watch(o, "inner.count", lambda: log.append(o.inner.count))
        new = Counter(10)
        o.inner = new
        assert log == [10]

        old.count = 99  # detached
        assert log == [10]

        new.count = 11
        assert log == [10, 11]

    def test_intermediate_set_to_none_then_back(self):
        o = Outer(Counter())
        log = []
        watch(o, "inner.count", lambda: log.append("fired"))
        o.inner = None
        assert log == ["fired"]
        o.inner = Counter()
        o.inner.count = 1
        assert log == ["fired", "fired", "fired"]

    def test_cancel_detaches_whole_chain(self):
        inner = Counter()
        o = Outer(inner)
        log = []
        handle = watch(o, "inner.count", lambda: log.append("fired"))
        handle.cancel()
        inner.count = 1
        o.inner = Counter()
        assert log == []

    def test_intermediate_not_kept_alive_by_binding(self):
        o = Outer(Counter())
        watch(o, "inner.count", lambda: None)
        inner_id = id(o.inner)
        o.inner = Counter()
        gc.collect()
        assert inner_id not in _anchor.listeners or inner_id == id(o.inner)


def test_handle_repr():
    handle = watch(Counter(), "count", lambda: None)
    assert repr(handle) == "WatchHandle(active)"
    handle.cancel()
    assert repr(handle) == "WatchHandle(cancelled)"
