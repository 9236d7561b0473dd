"""
onchange Proxies - Transparent Stand-ins for Observed Values
============================================================

This module provides the wrapper types handed out by an observer. Each is a
``wrapt.ObjectProxy``: everything not intercepted here (``len``, ``in``, ``==``,
``hash``, ``bool``, arithmetic, ``isinstance`` checks) is forwarded to the
wrapped object by wrapt.

The proxies hold no observation logic. Every intercepted operation is handed
to the ``InterceptionHandler`` of the root the proxy belongs to.

Proxy types:
- ObservedProxy: a value reachable from the root (attribute and item access,
  iteration, in-place operators)
- ObservedCallable: an ObservedProxy whose calls go through the handler
- ObservedMethod: a bound method read from an ObservedProxy; calls go through
  the handler
- ObservedView: a dict view whose iteration yields prepared values

wrapt convention: attributes named ``_self_*`` live on the proxy itself and are
never forwarded.
"""

import copy
from typing import Any, Callable

import wrapt

from .constants import PROXY_ATTRIBUTE_PREFIX


def _is_proxy_attribute(name: str) -> bool:
    return name.startswith(PROXY_ATTRIBUTE_PREFIX) or name == "__wrapped__"


class ObservedProxy(wrapt.ObjectProxy):
    """
    Wrapper around one underlying value reachable from an observed root.

    Attributes:
        _self_handler: The InterceptionHandler of the observed root.
        _self_path: Path recorded when this wrapper was created.
    """

    def __init__(self, wrapped: Any, handler: Any, path: Any) -> None:
        super().__init__(wrapped)
        self._self_handler = handler
        self._self_path = path

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith(PROXY_ATTRIBUTE_PREFIX):
            raise AttributeError(name)
        return self._self_handler.get(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if _is_proxy_attribute(name):
            super().__setattr__(name, value)
            return
        self._self_handler.set(self, name, value)

    def __delattr__(self, name: str) -> None:
        if _is_proxy_attribute(name):
            super().__delattr__(name)
            return
        self._self_handler.delete(self, name)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def __getitem__(self, key: Any) -> Any:
        return self._self_handler.get(self, key, item=True)

    def __setitem__(self, key: Any, value: Any) -> None:
        self._self_handler.set(self, key, value, item=True)

    def __delitem__(self, key: Any) -> None:
        self._self_handler.delete(self, key, item=True)

    def __iter__(self):
        return self._self_handler.iterate(self)

    def __reversed__(self):
        return self._self_handler.iterate(self, reverse=True)

    # ------------------------------------------------------------------
    # In-place operators mutate built-in containers without a method call
    # ------------------------------------------------------------------

    def __iadd__(self, other: Any) -> Any:
        return self._self_handler.inplace(self, "__iadd__", other)

    def __isub__(self, other: Any) -> Any:
        return self._self_handler.inplace(self, "__isub__", other)

    def __imul__(self, other: Any) -> Any:
        return self._self_handler.inplace(self, "__imul__", other)

    def __ior__(self, other: Any) -> Any:
        return self._self_handler.inplace(self, "__ior__", other)

    def __iand__(self, other: Any) -> Any:
        return self._self_handler.inplace(self, "__iand__", other)

    def __ixor__(self, other: Any) -> Any:
        return self._self_handler.inplace(self, "__ixor__", other)

    # ------------------------------------------------------------------
    # Copying and representation act on the underlying value
    # ------------------------------------------------------------------

    def __copy__(self) -> Any:
        return copy.copy(self.__wrapped__)

    def __deepcopy__(self, memo: dict) -> Any:
        return copy.deepcopy(self.__wrapped__, memo)

    def __reduce_ex__(self, protocol: int) -> Any:
        return self.__wrapped__.__reduce_ex__(protocol)

    def __repr__(self) -> str:
        return repr(self.__wrapped__)


class ObservedCallable(ObservedProxy):
    """ObservedProxy of an instance whose class defines ``__call__``."""

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._self_handler.apply(
            self.__wrapped__.__call__, self, self._self_path, args, kwargs
        )


class ObservedMethod(wrapt.ObjectProxy):
    """
    Bound method of an observed value; calling it runs the handler's apply step.

    ``_self_path`` is the path of the receiver, the container the call acts on.
    """

    def __init__(self, wrapped: Callable, receiver: ObservedProxy, path: Any) -> None:
        super().__init__(wrapped)
        self._self_receiver = receiver
        self._self_path = path

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        receiver = self._self_receiver
        return receiver._self_handler.apply(
            self.__wrapped__, receiver, self._self_path, args, kwargs
        )

    def __repr__(self) -> str:
        return repr(self.__wrapped__)


class ObservedView(wrapt.ObjectProxy):
    """Dict view whose iteration yields prepared values."""

    def __init__(self, wrapped: Any, prepare_iterator: Callable) -> None:
        super().__init__(wrapped)
        self._self_prepare_iterator = prepare_iterator

    def __iter__(self):
        return self._self_prepare_iterator(iter(self.__wrapped__), False)

    def __reversed__(self):
        return self._self_prepare_iterator(reversed(self.__wrapped__), True)

    def __repr__(self) -> str:
        return repr(self.__wrapped__)
