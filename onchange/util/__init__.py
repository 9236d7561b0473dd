"""
onchange Utilities
==================

Helpers used by the handler and the snapshot engine.

Modules:
- classify: never-wrapped values and the closed set of container kinds
- equality: the default change predicate, ``same_value``
- ignore: keys that are read raw and never reported
- iterators: lazy wrapping of values produced by iteration
"""

from .classify import ContainerKind, container_kind, is_never_wrapped, is_observable_container
from .equality import same_value

__all__ = [
    "ContainerKind",
    "container_kind",
    "is_never_wrapped",
    "is_observable_container",
    "same_value",
]
