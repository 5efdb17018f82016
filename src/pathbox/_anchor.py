"""Data anchor — plain Python structures that hold all watch registrations.

Listeners are keyed by id() of the watched object rather than stored on the
object itself, so copies of a Watchable never inherit its listeners and
unhashable objects (eq-dataclasses) can still be watched. A finalizer drops
an object's entry when it is collected, so ids are never reused stale.
"""

import weakref

# obj_id -> attribute name -> [(handle, fn), ...] in registration order
listeners: dict[int, dict[str, list]] = {}


def slot_for(obj) -> dict[str, list]:
    """Return the per-attribute listener table for obj, creating it once."""
    key = id(obj)
    table = listeners.get(key)
    if table is None:
        table = listeners[key] = {}
        weakref.finalize(obj, listeners.pop, key, None)
    return table
