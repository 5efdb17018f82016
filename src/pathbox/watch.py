"""watch() — observe a dotted attribute path on a Watchable object.

This is the default property-path capability an ObservableBox consumes:

    watch(obj, "progress.completed", on_change) -> WatchHandle

Only Watchable instances report attribute assignments. Each assignment
notifies, including re-assigning an equal value. For nested paths, replacing
an intermediate object re-binds the rest of the path onto the new object,
so the detached one stops reporting.

All listener state lives in _anchor — objects never carry it themselves.
"""

from __future__ import annotations

import logging
import weakref
from typing import Callable

from pathbox import _anchor
from pathbox._errors import ConfigurationError

logger = logging.getLogger("pathbox.watch")


class Watchable:
    """Mixin: every attribute assignment notifies watchers of that attribute.

    Usage:
        class Progress(Watchable):
            def __init__(self, total):
                self.total = total
                self.completed = 0

        p = Progress(5)
        handle = watch(p, "completed", lambda: print(p.completed))
        p.completed += 1   # prints 1
        handle.cancel()
    """

    def __setattr__(self, name: str, value) -> None:
        super().__setattr__(name, value)
        notify(self, name)


class WatchHandle:
    """Cancellable token for one path registration."""

    __slots__ = ("_cancelled", "_on_cancel")

    def __init__(self, on_cancel: Callable[[], None] | None = None) -> None:
        self._cancelled = False
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop callbacks. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        on_cancel, self._on_cancel = self._on_cancel, None
        if on_cancel is not None:
            on_cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"WatchHandle({state})"


def notify(obj, name: str) -> None:
    """Signal that obj.<name> changed.

    Watchable calls this on assignment. Call it directly for derived
    properties whose value changes without an assignment to that name.
    """
    table = _anchor.listeners.get(id(obj))
    if not table:
        return
    entries = table.get(name)
    if not entries:
        return
    # Snapshot: listeners may cancel or register others while we deliver.
    for handle, fn in list(entries):
        if not handle.cancelled:
            fn()


def _listen(obj, name: str, fn: Callable[[], None]) -> WatchHandle:
    """Register fn for assignments to obj.<name>."""
    entries = _anchor.slot_for(obj).setdefault(name, [])
    entry: tuple = ()

    def _remove() -> None:
        try:
            entries.remove(entry)
        except ValueError:
            pass  # already removed

    handle = WatchHandle(_remove)
    entry = (handle, fn)
    entries.append(entry)
    return handle


def parse_path(path: str) -> tuple[str, ...]:
    """Split a dotted path into attribute names. Raises ConfigurationError."""
    if not isinstance(path, str):
        raise ConfigurationError(f"property path must be a string, got {type(path).__name__}")
    names = tuple(path.split("."))
    if not all(name.isidentifier() for name in names):
        raise ConfigurationError(f"malformed property path {path!r}")
    return names


def resolve(obj, path: str) -> tuple[str, ...]:
    """Check that every owner along path is Watchable and has the attribute.

    Returns the parsed names. Raises ConfigurationError on the first
    segment that cannot be observed.
    """
    names = parse_path(path)
    owner = obj
    for i, name in enumerate(names):
        where = ".".join(names[:i]) or "<root>"
        if not isinstance(owner, Watchable):
            raise ConfigurationError(
                f"cannot watch {path!r}: {type(owner).__name__} at {where} is not Watchable"
            )
        if not hasattr(owner, name):
            raise ConfigurationError(
                f"cannot watch {path!r}: {type(owner).__name__} at {where} has no attribute {name!r}"
            )
        owner = getattr(owner, name)
    return names


class _PathBinding:
    """Listener on one path segment plus the binding for the rest of the path.

    Holds its owner weakly; the owner's listener table keeps the binding
    alive, and the binding must not keep the owner alive in turn.
    """

    __slots__ = ("_owner_ref", "_names", "_callback", "_head", "_tail")

    def __init__(self, owner, names: tuple[str, ...], callback: Callable[[], None]) -> None:
        self._owner_ref = weakref.ref(owner)
        self._names = names
        self._callback = callback
        self._tail: _PathBinding | None = None
        self._head = _listen(owner, names[0], self._on_head_changed)
        self._bind_tail(owner)

    def _bind_tail(self, owner) -> None:
        if len(self._names) == 1:
            return
        child = getattr(owner, self._names[0], None)
        if isinstance(child, Watchable):
            self._tail = _PathBinding(child, self._names[1:], self._callback)
        else:
            logger.debug(
                "Path segment %r is %s; rest of path unbound",
                self._names[0], type(child).__name__,
            )

    def _on_head_changed(self) -> None:
        if self._head.cancelled:
            return
        if self._tail is not None:
            self._tail.cancel()
            self._tail = None
        owner = self._owner_ref()
        if owner is not None:
            self._bind_tail(owner)
        self._callback()

    def cancel(self) -> None:
        self._head.cancel()
        if self._tail is not None:
            self._tail.cancel()
            self._tail = None


def watch(obj, path: str, callback: Callable[[], None], *, strict: bool = True) -> WatchHandle:
    """Call callback() after every change along path on obj.

    The path is resolved eagerly; an unresolvable path raises
    ConfigurationError and registers nothing. With strict=False only obj
    itself must be Watchable; the rest of the path binds as far as it
    currently resolves, the same way it rebinds after an intermediate
    object is replaced. Returns a WatchHandle; handle.cancel() stops
    further callbacks.
    """
    if strict:
        names = resolve(obj, path)
    else:
        names = parse_path(path)
        if not isinstance(obj, Watchable):
            raise ConfigurationError(f"cannot watch {path!r}: {type(obj).__name__} is not Watchable")
    binding = _PathBinding(obj, names, callback)
    logger.debug("Watching %r on %s", path, type(obj).__name__)
    return WatchHandle(binding.cancel)
