"""
onchange - Observe Changes Anywhere in a Python Object Graph
============================================================

Wrap an object with ``observe()`` and keep using it as before. Every change made
through the returned proxy (attribute and item writes, deletions, and the
methods of built-in lists, dicts and sets) is reported to a callback with the
path of the change, the new value and the previous value.

Key Features:
- Lazy wrapping: nested values are wrapped the first time they are read
- One wrapper per object, cached weakly and keyed by identity
- Container method calls are detected by snapshot and diff, one notification
  per call, including calls nested inside other calls
- Paths as dotted strings or as lists of keys
- Shallow, detached and ignored-key filtering
"""

from .exceptions import OnChangeError, SnapshotError
from .handler import ApplyData, InterceptionHandler
from .observe import define_property, observe, target, unsubscribe
from .options import Options
from .util.classify import ContainerKind
from .util.equality import same_value

__version__ = "0.1.0"

__all__ = [
    # Observation
    "observe",
    "target",
    "unsubscribe",
    "define_property",
    # Configuration and callback data
    "Options",
    "ApplyData",
    "same_value",
    "ContainerKind",
    "InterceptionHandler",
    # Exceptions
    "OnChangeError",
    "SnapshotError",
]
