"""Pathbox error hierarchy.

All pathbox-specific errors inherit from PathboxError for easy catching.
"""


class PathboxError(Exception):
    """Base error for all pathbox operations."""


class ConfigurationError(PathboxError, ValueError):
    """A property path cannot be resolved on the value it should watch."""


class BoxDestroyedError(PathboxError, RuntimeError):
    """A destroyed ObservableBox was asked to take a new value."""
