"""
onchange Public API
===================

``observe()`` wraps an object so that every change made through the returned
proxy, at any depth, is reported to a callback. The helpers below reach past a
proxy to the object it stands in for.

Example:
    >>> changes = []
    >>> state = observe({"todos": []}, lambda *change: changes.append(change[:3]))
    >>> state["todos"].append("write docs")
    >>> changes
    [('todos', ['write docs'], [])]
"""

from typing import Any, Callable

from .constants import MISSING, TARGET, UNSUBSCRIBE
from .handler import InterceptionHandler
from .options import Options
from .proxy import ObservedProxy


def observe(obj: Any, callback: Callable, **options: Any) -> Any:
    """
    Observe ``obj`` and everything reachable from it.

    Args:
        obj: The object to observe. Values that are never wrapped (numbers,
            strings, functions, iterators...) are returned unchanged.
        callback: Called as ``callback(path, value, previous, apply_data)``
            after each change; a callback accepting only three arguments is
            called without ``apply_data``.
        **options: See ``Options``; unknown names raise ``TypeError``.

    Returns:
        A proxy that behaves like ``obj``.
    """
    handler = InterceptionHandler(obj, callback, Options.from_kwargs(**options))
    return handler.root_proxy


def target(proxy: Any) -> Any:
    """Return the object behind ``proxy``; anything else is returned unchanged."""
    if not isinstance(proxy, ObservedProxy):
        return proxy
    return getattr(proxy, TARGET)


def unsubscribe(proxy: Any) -> Any:
    """
    Stop observing the root ``proxy`` belongs to and return the object behind it.

    Only the root proxy unsubscribes. Calling this again, or on a nested proxy,
    changes nothing and returns the object behind ``proxy``.
    """
    if not isinstance(proxy, ObservedProxy):
        return proxy

    underlying = getattr(proxy, UNSUBSCRIBE, MISSING)
    if underlying is MISSING:
        return target(proxy)
    return underlying


def define_property(proxy: Any, key: Any, value: Any) -> None:
    """
    Set ``key`` on the object behind ``proxy`` without running its
    ``__setattr__`` or ``__setitem__`` overrides, reporting the change.
    """
    if not isinstance(proxy, ObservedProxy):
        raise TypeError(f"define_property() expects an observed proxy, got {type(proxy).__name__}")
    proxy._self_handler.define_property(proxy, key, value)
