"""
onchange Identity Cache - One Wrapper per Underlying Object
===========================================================

This module provides the IdentityCache owned by each observed root. It maps
underlying objects to their wrappers, remembers the path each wrapper was
created at, performs the low-level mutations on behalf of the handler, and
carries the root's one-way unsubscribed flag.

Weak association:
    Lists, dicts and sets cannot be weakly referenced, so the cache is keyed by
    ``id(value)`` and holds the *wrappers* weakly. A wrapper keeps its
    underlying value alive, so an id stays valid for as long as its entry
    exists, and an entry disappears as soon as nobody outside the cache holds
    the wrapper. Lookups still confirm ``wrapper.__wrapped__ is value``.

Paths:
    A wrapper's path is recorded the first time its value is wrapped and is not
    updated when the same value is read through another path later. A value
    deleted from the graph keeps its path, so writes to it still report where
    it used to live.
"""

import logging
import weakref
from collections.abc import Mapping, MutableSequence
from typing import Any, Callable, Optional

from . import path as paths
from .constants import MISSING
from .proxy import ObservedCallable, ObservedProxy
from .util.classify import is_frozen_field, is_never_wrapped
from .util.equality import same_value

logger = logging.getLogger(__name__)


def _is_item_container(target: Any) -> bool:
    return isinstance(target, (Mapping, MutableSequence))


def read_property(target: Any, key: Any, item: bool = False) -> Any:
    """Read ``key`` the way the runtime would; ``MISSING`` when absent."""
    if item:
        try:
            return target[key]
        except (KeyError, IndexError):
            return MISSING
    return getattr(target, key, MISSING)


def has_property(target: Any, key: Any, item: bool = False) -> bool:
    if not item:
        return hasattr(target, key)
    if isinstance(target, Mapping):
        return key in target
    return read_property(target, key, item=True) is not MISSING


class IdentityCache:
    """
    Wrapper-to-underlying bookkeeping for one observed root.

    Thread safety: Not thread-safe on its own. The handler serializes every
    operation of a root under one lock.
    """

    def __init__(self, equals: Callable[[Any, Any], bool] = same_value) -> None:
        self._equals = equals
        self._proxies: "weakref.WeakValueDictionary[int, ObservedProxy]" = (
            weakref.WeakValueDictionary()
        )
        self.is_unsubscribed = False

    def __len__(self) -> int:
        return len(self._proxies)

    def _lookup(self, value: Any) -> Optional[ObservedProxy]:
        proxy = self._proxies.get(id(value))
        if proxy is not None and proxy.__wrapped__ is value:
            return proxy
        return None

    def get_proxy(self, value: Any, path: Any, handler: Any) -> Any:
        """
        Return the wrapper for ``value``, creating it at ``path`` if needed.

        Never-wrapped values, this root's own wrappers and, once unsubscribed,
        everything else are returned unchanged.
        """
        if self.is_unsubscribed or is_never_wrapped(value):
            return value

        if isinstance(value, ObservedProxy) and value._self_handler is handler:
            return value

        proxy = self._lookup(value)
        if proxy is None:
            proxy_type = ObservedCallable if callable(value) else ObservedProxy
            proxy = proxy_type(value, handler, path)
            self._proxies[id(value)] = proxy

        return proxy

    def get_path(self, target: Any) -> Any:
        """Recorded path of an underlying value, the root path if unknown."""
        proxy = self._lookup(target)
        if proxy is None:
            return paths.ROOT
        return proxy._self_path

    def is_detached(self, target: Any, root: Any) -> bool:
        """True when walking the recorded path from ``root`` does not reach ``target``."""
        return paths.get(root, self.get_path(target)) is not target

    def is_get_invariant(self, target: Any, key: Any) -> bool:
        """
        True when a read must return the stored value itself.

        Dunder attributes belong to the runtime, and fields of frozen
        dataclasses are the closest Python analogue of frozen properties.
        """
        if isinstance(key, str) and key.startswith("__") and key.endswith("__"):
            return True
        return is_frozen_field(target, key)

    def set_property(
        self, target: Any, key: Any, value: Any, previous: Any, item: bool = False
    ) -> bool:
        """Write ``key``; a rejected write raises the underlying exception."""
        if previous is MISSING or not self._equals(previous, value):
            if item:
                target[key] = value
            else:
                setattr(target, key, value)
        return True

    def define_property(self, target: Any, key: Any, value: Any) -> bool:
        """Write ``key`` below any ``__setattr__`` / ``__setitem__`` override."""
        if isinstance(target, dict):
            dict.__setitem__(target, key, value)
        elif _is_item_container(target):
            target[key] = value
        else:
            object.__setattr__(target, key, value)
        return True

    def delete_property(self, target: Any, key: Any, item: bool = False) -> bool:
        if item:
            del target[key]
        else:
            delattr(target, key)
        return True

    def own_property(self, target: Any, key: Any) -> Any:
        """The value ``define_property`` would replace, ``MISSING`` if none."""
        if _is_item_container(target):
            return read_property(target, key, item=True)
        try:
            return object.__getattribute__(target, key)
        except AttributeError:
            return MISSING

    def is_same_descriptor(self, value: Any, target: Any, key: Any) -> bool:
        """True when defining ``key`` as ``value`` would change nothing."""
        current = self.own_property(target, key)
        return current is not MISSING and same_value(current, value)

    def unsubscribe(self) -> None:
        logger.debug(f"Unsubscribing; dropping {len(self._proxies)} cached proxies")
        self._proxies.clear()
        self.is_unsubscribed = True
