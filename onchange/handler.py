"""
onchange InterceptionHandler - Observation Logic Behind Every Proxy
===================================================================

One InterceptionHandler exists per observed root. Every ObservedProxy reachable
from the root forwards its intercepted operations here; the handler reads and
writes the underlying objects, decides what to wrap, and reports changes.

Operations:
- get: attribute and item reads, with lazy wrapping of the value read
- set: attribute and item writes
- define_property: writes below ``__setattr__`` / ``__setitem__`` overrides
- delete: attribute and item deletion
- apply: calls of methods read from a wrapper
- inplace: in-place operators (``+=``, ``|=``, ...)
- iterate: ``iter()`` and ``reversed()`` of a wrapper

Container method calls:
    Methods of built-in containers mutate their receiver without any write
    passing through a proxy. Such calls are bracketed by a SmartClone session:
    the receiver is snapshotted before the call and compared afterwards, and a
    single notification reports the method name, arguments and result.

Notifications:
    ``callback(path, value, previous, apply_data)`` runs synchronously, once per
    visible change. Changes made while a session is open are folded into that
    session instead of being reported. Absent values are reported as ``None``.

Thread safety:
    All operations of one root run under a single re-entrant lock, covering the
    identity cache and the snapshot sessions together.
"""

import inspect
import logging
import operator
import threading
from collections import defaultdict
from collections.abc import Mapping, Sequence
from collections.abc import Set as AbstractSet
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from . import path as paths
from .cache import IdentityCache, has_property, read_property
from .constants import MISSING, TARGET, UNSUBSCRIBE
from .options import Options
from .proxy import ObservedMethod, ObservedProxy
from .smart_clone import SmartClone, accepts_wrapper, runs_on_wrapper
from .util.classify import (
    DETACHING_METHODS,
    KEYED_LOOKUPS,
    ContainerKind,
    container_kind,
    is_lookup_method,
)
from .util.ignore import ignore_property
from .util.iterators import is_iterator, wrap_iterator

logger = logging.getLogger(__name__)

# Used when the wrapped value has no in-place method; Python rebinds the result.
_INPLACE_FALLBACKS: Dict[str, Callable[[Any, Any], Any]] = {
    "__iadd__": operator.add,
    "__isub__": operator.sub,
    "__imul__": operator.mul,
    "__ior__": operator.or_,
    "__iand__": operator.and_,
    "__ixor__": operator.xor,
}

_BOUND_METHOD_TYPES = (
    type(object().__str__),  # method-wrapper
    type([].append),  # builtin method
)


@dataclass
class ApplyData:
    """Metadata of a method-call notification."""

    name: str
    args: Tuple[Any, ...]
    result: Any
    kwargs: Dict[str, Any] = field(default_factory=dict)


def _is_bound_to(value: Any, target: Any) -> bool:
    if not callable(value) or getattr(value, "__self__", None) is not target:
        return False
    return inspect.ismethod(value) or isinstance(value, _BOUND_METHOD_TYPES)


def _normalize_index(target: Any, key: Any) -> Any:
    """Turn a negative sequence index into the index it addresses."""
    if (
        isinstance(key, int)
        and not isinstance(key, bool)
        and key < 0
        and isinstance(target, Sequence)
        and not isinstance(target, (str, bytes))
    ):
        normalized = key + len(target)
        if normalized >= 0:
            return normalized
    return key


def _takes_apply_data(callback: Callable) -> bool:
    try:
        inspect.signature(callback).bind(None, None, None, None)
    except TypeError:
        return False
    except ValueError:
        # No introspectable signature; assume the full form
        return True
    return True


class InterceptionHandler:
    """
    Observation logic shared by all wrappers of one observed root.

    Attributes:
        root: The underlying root object.
        root_proxy: The wrapper handed out by ``observe()``.
        options: The root's Options.
        cache: IdentityCache of the root.
        smart_clone: SmartClone of the root.
    """

    def __init__(self, root: Any, callback: Callable, options: Options) -> None:
        self.root = root
        self.options = options
        self.cache = IdentityCache(options.equals)
        self.smart_clone = SmartClone()
        self._callback = callback
        self._callback_takes_apply_data = _takes_apply_data(callback)
        self._lock = threading.RLock()

        self.root_proxy = self.cache.get_proxy(root, paths.ROOT, self)
        logger.debug(f"Observing {type(root).__name__} (shallow={options.is_shallow})")

    # ------------------------------------------------------------------
    # Value preparation
    # ------------------------------------------------------------------

    def unwrap(self, value: Any) -> Any:
        """Underlying value of one of this root's wrappers; anything else unchanged."""
        if isinstance(value, ObservedProxy) and value._self_handler is self:
            return value.__wrapped__
        return value

    def prepare_value(
        self,
        value: Any,
        target: Any,
        key: Any,
        base_path: Any = None,
        item: bool = False,
    ) -> Any:
        """
        Turn a value read from ``target[key]`` / ``target.key`` into what the
        caller receives: a wrapper at ``base_path + key``, an ObservedMethod for
        bound methods of ``target``, or the raw value.
        """
        options = self.options
        if (
            (options.is_shallow and not SmartClone.is_handled_method(target, key))
            or ignore_property(self.cache, options, key)
            or (not item and self.cache.is_get_invariant(target, key))
            or (options.ignore_detached and self.cache.is_detached(target, self.root))
        ):
            return value

        if base_path is None:
            base_path = self.cache.get_path(target)

        if _is_bound_to(value, target):
            receiver = self.cache.get_proxy(target, base_path, self)
            return ObservedMethod(value, receiver, base_path)

        return self.cache.get_proxy(value, paths.concat(base_path, key), self)

    def _prepare_element(self, value: Any, target: Any, key: Any, base_path: Any) -> Any:
        with self._lock:
            return self.prepare_value(value, target, key, base_path, item=True)

    # ------------------------------------------------------------------
    # Change reporting
    # ------------------------------------------------------------------

    def _handle_change_on_target(
        self, target: Any, key: Any, value: Any, previous: Any
    ) -> None:
        if self.cache.is_unsubscribed:
            return
        if key is not None and ignore_property(self.cache, self.options, key):
            return
        if self.options.ignore_detached and self.cache.is_detached(target, self.root):
            return

        self._handle_change(self.cache.get_path(target), key, value, previous)

    def _handle_change(
        self,
        change_path: Any,
        key: Any,
        value: Any,
        previous: Any,
        apply_data: Optional[ApplyData] = None,
    ) -> None:
        if self.smart_clone.is_cloning:
            self.smart_clone.update(change_path, key, previous)
        else:
            self._emit(paths.concat(change_path, key), value, previous, apply_data)

    def _emit(
        self,
        path: Any,
        value: Any,
        previous: Any,
        apply_data: Optional[ApplyData],
    ) -> None:
        path = paths.render(path, self.options.path_as_array)
        value = None if value is MISSING else value
        previous = None if previous is MISSING else previous

        if self._callback_takes_apply_data:
            self._callback(path, value, previous, apply_data)
        else:
            self._callback(path, value, previous)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, proxy: ObservedProxy, key: Any, item: bool = False) -> Any:
        with self._lock:
            target = proxy.__wrapped__

            if not item and key == TARGET:
                return target

            if (
                not item
                and key == UNSUBSCRIBE
                and not self.cache.is_unsubscribed
                and target is self.root
            ):
                self.cache.unsubscribe()
                return target

            if item and isinstance(key, slice):
                return self._get_slice(target, key)

            if item:
                key = _normalize_index(target, key)
                if self._inserts_default(target, key):
                    value = target[key]
                    self._handle_change_on_target(target, key, value, MISSING)
                else:
                    value = target[key]
            else:
                value = self._read_attribute(proxy, target, key)

            return self.prepare_value(value, target, key, item=item)

    def _read_attribute(self, proxy: ObservedProxy, target: Any, key: str) -> Any:
        # Properties of plain objects run against the wrapper, so reads they
        # make are wrapped too
        if not self.cache.is_unsubscribed and container_kind(target) is None:
            descriptor = inspect.getattr_static(type(target), key, None)
            if (
                isinstance(descriptor, property)
                and descriptor.fget is not None
                and accepts_wrapper(descriptor.fget)
            ):
                return descriptor.fget(proxy)
        return getattr(target, key)

    def _get_slice(self, target: Any, key: slice) -> Any:
        values = target[key]
        if not isinstance(values, (list, tuple)):
            return self.prepare_value(values, target, key, item=True)

        base_path = self.cache.get_path(target)
        indices = range(*key.indices(len(target)))
        prepared = [
            self.prepare_value(value, target, index, base_path, item=True)
            for index, value in zip(indices, values)
        ]
        return tuple(prepared) if isinstance(values, tuple) else prepared

    @staticmethod
    def _inserts_default(target: Any, key: Any) -> bool:
        return (
            isinstance(target, defaultdict)
            and target.default_factory is not None
            and key not in target
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, proxy: ObservedProxy, key: Any, value: Any, item: bool = False) -> None:
        with self._lock:
            target = proxy.__wrapped__

            if item and isinstance(key, slice) and self._is_list(target):
                self._apply_item_method(proxy, target, "__setitem__", (key, value))
                return

            if item:
                key = _normalize_index(target, key)

            value = self.unwrap(value)
            previous = read_property(target, key, item)
            existed = has_property(target, key, item)

            try:
                self.cache.set_property(target, key, value, previous, item)
            except Exception as e:
                logger.debug(f"Write of {key!r} rejected by {type(target).__name__}: {e}")
                raise

            if not existed or not self.options.equals(previous, value):
                self._handle_change_on_target(target, key, value, previous)

    def define_property(self, proxy: ObservedProxy, key: Any, value: Any) -> None:
        with self._lock:
            target = proxy.__wrapped__
            value = self.unwrap(value)

            if self.cache.is_same_descriptor(value, target, key):
                return

            previous = self.cache.own_property(target, key)
            try:
                self.cache.define_property(target, key, value)
            except Exception as e:
                logger.debug(
                    f"Definition of {key!r} rejected by {type(target).__name__}: {e}"
                )
                raise

            self._handle_change_on_target(target, key, value, previous)

    def delete(self, proxy: ObservedProxy, key: Any, item: bool = False) -> None:
        with self._lock:
            target = proxy.__wrapped__

            if item:
                key = _normalize_index(target, key)

            # Removing a list element shifts the ones after it
            if item and self._is_list(target):
                if isinstance(key, slice) or has_property(target, key, item):
                    self._apply_item_method(proxy, target, "__delitem__", (key,))
                return

            if not has_property(target, key, item):
                return

            previous = read_property(target, key, item)
            try:
                self.cache.delete_property(target, key, item)
            except Exception as e:
                logger.debug(f"Deletion of {key!r} rejected by {type(target).__name__}: {e}")
                raise

            self._handle_change_on_target(target, key, MISSING, previous)

    @staticmethod
    def _is_list(target: Any) -> bool:
        return container_kind(target) is ContainerKind.LIST

    def _apply_item_method(
        self, proxy: ObservedProxy, target: Any, name: str, args: Tuple[Any, ...]
    ) -> Any:
        method = getattr(target, name)
        return self.apply(method, proxy, self.cache.get_path(target), args, {})

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def apply(
        self,
        method: Callable,
        receiver: ObservedProxy,
        base_path: Any,
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> Any:
        """
        Call ``method`` (bound to ``receiver``'s underlying value) on behalf of
        the wrapper ``receiver`` located at ``base_path``.
        """
        with self._lock:
            target = receiver.__wrapped__

            if self.cache.is_unsubscribed:
                return method(*args, **kwargs)

            if not SmartClone.is_handled_type(target):
                if runs_on_wrapper(method):
                    return method.__func__(receiver, *args, **kwargs)
                return method(*args, **kwargs)

            name = getattr(method, "__name__", None)
            handled = SmartClone.is_handled_method(target, name)
            if handled:
                call_args = tuple(self.unwrap(arg) for arg in args)
                call_kwargs = {k: self.unwrap(v) for k, v in kwargs.items()}
            else:
                call_args, call_kwargs = args, kwargs

            if is_lookup_method(target, name):
                result = method(*call_args, **call_kwargs)
                return self._prepare_result(result, name, receiver, target, base_path, args)

            return self._apply_in_session(
                method, name, receiver, target, base_path, args, call_args, call_kwargs
            )

    def _apply_in_session(
        self,
        method: Callable,
        name: Any,
        receiver: ObservedProxy,
        target: Any,
        base_path: Any,
        args: Tuple[Any, ...],
        call_args: Tuple[Any, ...],
        call_kwargs: Dict[str, Any],
    ) -> Any:
        equals = self.options.equals
        details = self.options.includes_details(name)
        changes = []

        self.smart_clone.start(target, base_path, args)
        try:
            this = self.smart_clone.preferred_this_arg(method, receiver, target)
            if this is target:
                result = method(*call_args, **call_kwargs)
            else:
                result = method.__func__(this, *call_args, **call_kwargs)

            if details:
                changes = list(self.smart_clone.changes(target, equals))
                is_changed = bool(changes)
            else:
                is_changed = self.smart_clone.is_changed(target, equals)
        finally:
            clone = self.smart_clone.stop()

        result = self._prepare_result(result, name, receiver, target, base_path, args)

        # A re-entrant call on the same container is reported by the outer call
        if clone is None or not is_changed:
            return result

        if self.options.ignore_detached and self.cache.is_detached(target, self.root):
            return result

        if details:
            for key, value, previous in changes:
                self._handle_change_on_target(target, key, value, previous)
        else:
            apply_data = ApplyData(name, args, result, dict(call_kwargs))
            if self.smart_clone.is_cloning:
                self._handle_change(
                    paths.initial(base_path),
                    paths.last(base_path),
                    target,
                    clone,
                    apply_data,
                )
            else:
                self._handle_change(base_path, None, target, clone, apply_data)

        return result

    def _prepare_result(
        self,
        result: Any,
        name: Any,
        receiver: ObservedProxy,
        target: Any,
        base_path: Any,
        args: Tuple[Any, ...],
    ) -> Any:
        handled = SmartClone.is_handled_method(target, name)

        if handled and name in KEYED_LOOKUPS and args:
            key = self.unwrap(args[0])
            # A default handed back for a missing key is not part of the graph
            if read_property(target, key, item=True) is not result:
                return result
            return self.prepare_value(result, target, key, base_path, item=True)

        if is_iterator(result) and name not in DETACHING_METHODS:
            return wrap_iterator(
                result,
                name,
                target,
                base_path,
                self._prepare_element,
                owner=receiver,
            )

        if (
            handled
            and name not in DETACHING_METHODS
            and SmartClone.is_handled_type(result)
        ):
            return self.cache.get_proxy(result, base_path, self)

        return result

    def inplace(self, proxy: ObservedProxy, name: str, other: Any) -> Any:
        with self._lock:
            target = proxy.__wrapped__
            method = getattr(target, name, None)

            if method is not None:
                result = self.apply(
                    method, proxy, self.cache.get_path(target), (other,), {}
                )
                if result is not NotImplemented:
                    return result

            return _INPLACE_FALLBACKS[name](target, self.unwrap(other))

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def iterate(self, proxy: ObservedProxy, reverse: bool = False) -> Any:
        with self._lock:
            target = proxy.__wrapped__
            iterator = reversed(target) if reverse else iter(target)

            if self.cache.is_unsubscribed:
                return iterator

            kind = "keys" if isinstance(target, (Mapping, AbstractSet)) else "indices"
            return wrap_iterator(
                iterator,
                "__iter__",
                target,
                self.cache.get_path(target),
                self._prepare_element,
                owner=proxy,
                kind=kind,
                reverse=reverse,
            )
