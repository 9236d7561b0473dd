"""
onchange SmartClone - Snapshot and Diff around Container Method Calls
=====================================================================

Calls such as ``lst.insert(1, 9)``, ``d.update(...)`` or ``s.add(x)`` change a
built-in container without any attribute or item write passing through the
proxy. SmartClone detects them by taking a shallow snapshot of the container
before the call and comparing it with the container afterwards.

Session protocol:
1. start(target, path, args) before the call
2. update(path, key, previous) for every change observed while the call runs
3. is_changed(target, equals) right after the call
4. stop() to close the session and collect the snapshot

Nesting:
    Sessions form a stack of CloneFrames. A re-entrant call on the container
    already at the top only increments that frame's depth, without a second
    physical snapshot. A call on another container pushes its own frame; when it
    ends, its change is folded into the frame below through update() instead of
    being reported, so the outermost call produces exactly one notification.

update() keeps the first previous value seen for each (path, key): the true
"before" state is the one preceding the first nested change. Changes below the
frame's container are also written into a lazily copied branch of the snapshot,
so the snapshot reported as the previous value reflects the pre-call state.
Changes on paths outside the container are recorded and dropped.
"""

import copy
import logging
import types
from collections.abc import Mapping, MutableSequence
from collections.abc import Set as AbstractSet
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from . import path as paths
from .constants import MISSING
from .exceptions import SnapshotError
from .util.classify import (
    ContainerKind,
    container_kind,
    is_handled_method,
    is_observable_container,
)

logger = logging.getLogger(__name__)


def snapshot(value: Any) -> Any:
    """Shallow copy of ``value``; failures surface as SnapshotError."""
    try:
        return copy.copy(value)
    except Exception as e:
        raise SnapshotError(
            f"Cannot snapshot {type(value).__name__} before a mutating call: {e}"
        ) from e


def _contains(node: Any, key: Any) -> bool:
    if isinstance(node, AbstractSet):
        return False
    if isinstance(node, Mapping):
        return key in node
    if isinstance(node, MutableSequence):
        return isinstance(key, int) and -len(node) <= key < len(node)
    return isinstance(key, str) and key in getattr(node, "__dict__", {})


def _assign(node: Any, key: Any, value: Any) -> None:
    """Write a recorded previous value into a private copy inside the snapshot."""
    if isinstance(node, AbstractSet):
        return

    if isinstance(node, Mapping):
        if value is MISSING:
            node.pop(key, None)
        else:
            node[key] = value
        return

    if isinstance(node, MutableSequence):
        if isinstance(key, int) and -len(node) <= key < len(node):
            if value is not MISSING:
                node[key] = value
        return

    if value is MISSING:
        if key in getattr(node, "__dict__", {}):
            object.__delattr__(node, key)
    elif isinstance(key, str):
        object.__setattr__(node, key, value)


def accepts_wrapper(func: Callable) -> bool:
    """
    True for Python-level functions that can run with a wrapper as ``self``.

    Zero-argument ``super()`` reaches builtin descriptors that reject a proxy
    ``self``; such functions carry a ``__class__`` cell.
    """
    code = getattr(func, "__code__", None)
    return code is not None and "__class__" not in code.co_freevars


def runs_on_wrapper(method: Callable) -> bool:
    return isinstance(method, types.MethodType) and accepts_wrapper(method.__func__)


@dataclass
class CloneFrame:
    """One active snapshot session."""

    target: Any
    path: Tuple[Any, ...]
    args: Tuple[Any, ...]
    kind: ContainerKind
    clone: Any
    depth: int = 0
    previous: Dict[Tuple[Tuple[Any, ...], Any], Any] = field(default_factory=dict)
    copied: Set[int] = field(default_factory=set)


class SmartClone:
    """
    Snapshot/diff engine shared by all containers of one observed root.

    Thread safety: Not thread-safe (the handler serializes access).
    """

    is_handled_type = staticmethod(is_observable_container)
    is_handled_method = staticmethod(is_handled_method)

    def __init__(self) -> None:
        self._stack: List[CloneFrame] = []

    @property
    def is_cloning(self) -> bool:
        return bool(self._stack)

    @property
    def depth(self) -> int:
        """Number of handled calls currently in progress."""
        return sum(frame.depth + 1 for frame in self._stack)

    def start(self, target: Any, path: Any, args: Tuple[Any, ...]) -> None:
        if self._stack and self._stack[-1].target is target:
            self._stack[-1].depth += 1
            return

        if self._stack:
            logger.debug(
                f"Nested snapshot of {type(target).__name__} at {path!r} "
                f"(depth {self.depth})"
            )

        self._stack.append(
            CloneFrame(
                target=target,
                path=tuple(paths.walk(path)),
                args=tuple(args),
                kind=container_kind(target),
                clone=snapshot(target),
            )
        )

    def update(self, path: Any, key: Any, previous: Any) -> None:
        frame = self._stack[-1]
        record_key = (tuple(paths.walk(path)), key)
        if record_key in frame.previous:
            return
        frame.previous[record_key] = previous

        relative = paths.after(path, frame.path)
        if relative is None or key is None:
            return

        node = frame.clone
        for segment in relative:
            child = paths.step(node, segment)
            if child is MISSING:
                return
            if id(child) not in frame.copied:
                child = snapshot(child)
                frame.copied.add(id(child))
                _assign(node, segment, child)
            node = child

        # The frame's own snapshot predates the call; keys it lacks were added
        if node is frame.clone and not _contains(node, key):
            return

        _assign(node, key, previous)

    def stop(self) -> Optional[Any]:
        """Close one nesting level; the snapshot when a frame ends, else ``None``."""
        frame = self._stack[-1]
        if frame.depth:
            frame.depth -= 1
            return None

        self._stack.pop()
        return frame.clone

    def preferred_this_arg(self, method: Callable, receiver: Any, target: Any) -> Any:
        """
        The ``self`` a container method should run against.

        Handled methods and builtins run on the underlying container, never on
        the wrapper. Other Python-level methods of container subclasses run on
        the wrapper, so their own reads and writes are intercepted and fold
        into the current session.
        """
        name = getattr(method, "__name__", None)
        if self.is_handled_method(target, name) or not runs_on_wrapper(method):
            return target
        return receiver

    def is_changed(self, target: Any, equals: Callable[[Any, Any], bool]) -> bool:
        frame = self._stack[-1]
        clone = frame.clone

        if len(clone) != len(target):
            return True

        if frame.kind is ContainerKind.SET:
            return any(element not in clone for element in target)

        if frame.kind is ContainerKind.MAPPING:
            return any(
                old_key != new_key or not equals(old, new)
                for (old_key, old), (new_key, new) in zip(clone.items(), target.items())
            )

        return any(not equals(old, new) for old, new in zip(clone, target))

    def changes(
        self, target: Any, equals: Callable[[Any, Any], bool]
    ) -> Iterator[Tuple[Any, Any, Any]]:
        """
        Yield ``(key, new, previous)`` for each key or index the call changed.

        Sets have no keys; a changed set yields one ``(None, target, snapshot)``.
        """
        frame = self._stack[-1]
        clone = frame.clone

        if frame.kind is ContainerKind.SET:
            if self.is_changed(target, equals):
                yield None, target, clone
            return

        if frame.kind is ContainerKind.MAPPING:
            for key, new in target.items():
                old = clone.get(key, MISSING)
                if old is MISSING or not equals(old, new):
                    yield key, new, old
            for key, old in clone.items():
                if key not in target:
                    yield key, MISSING, old
            return

        for index in range(max(len(clone), len(target))):
            old = clone[index] if index < len(clone) else MISSING
            new = target[index] if index < len(target) else MISSING
            if old is MISSING or new is MISSING or not equals(old, new):
                yield index, new, old
