"""
Value Classification
====================

Decides, per type, how the observer treats a value:

- never wrapped: scalars, immutable values, functions and methods, iterators
  and raw buffers whose in-place mutation cannot be intercepted (``bytearray``,
  ``memoryview``, ``array.array``, numpy arrays)
- container kinds: the closed set of built-in containers whose mutating methods
  are detected by snapshot and diff rather than by attribute interception

Classification is by type and memoized with an LRU cache, since the same few
types are classified on every read.
"""

import array
import collections
import dataclasses
import datetime
import fractions
import pathlib
import types
import uuid
from collections.abc import Iterator
from decimal import Decimal
from enum import Enum
from typing import Any, FrozenSet, Optional

import numpy as np
from cachetools import LRUCache, cached

from ..proxy import ObservedMethod


class ContainerKind(Enum):
    """Built-in containers whose mutations are invisible to property interception."""

    LIST = "list"
    MAPPING = "mapping"
    SET = "set"


_MUTATING_METHODS = {
    ContainerKind.LIST: frozenset(
        {
            "append",
            "extend",
            "insert",
            "pop",
            "remove",
            "clear",
            "sort",
            "reverse",
            "__setitem__",
            "__delitem__",
            "__iadd__",
            "__imul__",
            # deque
            "appendleft",
            "extendleft",
            "popleft",
            "rotate",
        }
    ),
    ContainerKind.MAPPING: frozenset(
        {
            "clear",
            "pop",
            "popitem",
            "setdefault",
            "update",
            "__ior__",
            # OrderedDict / Counter
            "move_to_end",
            "subtract",
        }
    ),
    ContainerKind.SET: frozenset(
        {
            "add",
            "discard",
            "remove",
            "pop",
            "clear",
            "update",
            "difference_update",
            "intersection_update",
            "symmetric_difference_update",
            "__ior__",
            "__iand__",
            "__isub__",
            "__ixor__",
        }
    ),
}

# Read-only methods that still need unwrapped arguments to compare identities.
_LOOKUP_METHODS = {
    ContainerKind.LIST: frozenset({"index", "count"}),
    ContainerKind.MAPPING: frozenset({"get", "keys", "values", "items"}),
    ContainerKind.SET: frozenset({"isdisjoint", "issubset", "issuperset"}),
}

# Lookups whose result is conceptually a read of ``args[0]``.
KEYED_LOOKUPS: FrozenSet[str] = frozenset({"get", "setdefault"})

# Removals whose result has already left the graph.
DETACHING_METHODS: FrozenSet[str] = frozenset({"pop", "popitem", "popleft"})

_SCALAR_TYPES = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    range,
    slice,
    Decimal,
    fractions.Fraction,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    datetime.tzinfo,
    Enum,
    uuid.UUID,
    pathlib.PurePath,
    frozenset,
    type,
    types.ModuleType,
)

_BUFFER_TYPES = (bytearray, memoryview, array.array, np.ndarray, np.generic)

# Plain functions and methods; instances of classes defining __call__ are wrapped.
_FUNCTION_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.MethodWrapperType,
    types.WrapperDescriptorType,
    types.MethodDescriptorType,
    types.ClassMethodDescriptorType,
    ObservedMethod,
)


@cached(cache=LRUCache(maxsize=512))
def _kind_for_type(cls: type) -> Optional[ContainerKind]:
    if issubclass(cls, (list, collections.deque)):
        return ContainerKind.LIST
    if issubclass(cls, dict):
        return ContainerKind.MAPPING
    if issubclass(cls, set):
        return ContainerKind.SET
    return None


@cached(cache=LRUCache(maxsize=512))
def _is_never_wrapped_type(cls: type) -> bool:
    return issubclass(
        cls, _SCALAR_TYPES + _BUFFER_TYPES + _FUNCTION_TYPES
    ) or issubclass(cls, Iterator)


def container_kind(value: Any) -> Optional[ContainerKind]:
    """Return the container kind of an underlying value, or ``None``."""
    return _kind_for_type(type(value))


def is_never_wrapped(value: Any) -> bool:
    """True for values handed out raw: scalars, buffers, functions, iterators."""
    return _is_never_wrapped_type(type(value))


def is_observable_container(value: Any) -> bool:
    return container_kind(value) is not None


def is_handled_method(target: Any, name: Any) -> bool:
    """True when ``name`` is a known mutating or lookup method of the target's kind."""
    kind = container_kind(target)
    if kind is None or not isinstance(name, str):
        return False
    return name in _MUTATING_METHODS[kind] or name in _LOOKUP_METHODS[kind]


def is_lookup_method(target: Any, name: Any) -> bool:
    """True for read-only methods that still take unwrapped arguments."""
    kind = container_kind(target)
    return kind is not None and isinstance(name, str) and name in _LOOKUP_METHODS[kind]


def is_frozen_field(target: Any, name: Any) -> bool:
    """True for a field of a frozen dataclass instance."""
    if not isinstance(name, str) or not dataclasses.is_dataclass(target):
        return False
    if isinstance(target, type) or not target.__dataclass_params__.frozen:
        return False
    return any(field.name == name for field in dataclasses.fields(target))
