"""
onchange Paths - Hierarchical Locations Relative to the Root
============================================================

A path is either a sequence of keys (``("items", 0, "name")``) or the same keys
joined with ``.`` (``"items.0.name"``). Every function here accepts both forms
and returns the form it was given. The handler works with tuples internally and
renders the configured form only when a change is reported.

Functions:
- concat / initial / last: build and take apart paths
- after: relative path of one path below another
- get: resolve a path against a live object graph
- render: convert an internal tuple path to the reported form
"""

from collections.abc import Mapping, Sequence
from typing import Any, Iterator, List, Optional, Tuple, Union

from .constants import MISSING, PATH_SEPARATOR

Path = Union[Tuple[Any, ...], List[Any], str]

ROOT: Tuple[Any, ...] = ()


def _is_string(path: Path) -> bool:
    return isinstance(path, str)


def is_root(path: Optional[Path]) -> bool:
    """True for the empty path (and for ``None``, an unknown path)."""
    return not path


def concat(path: Path, key: Any) -> Path:
    """Return a new path with ``key`` appended; ``None`` and ``""`` append nothing."""
    if key is None or key == "":
        return path

    if _is_string(path):
        if path:
            return f"{path}{PATH_SEPARATOR}{key}"
        return str(key)

    if isinstance(path, list):
        return [*path, key]

    return (*path, key)


def initial(path: Path) -> Path:
    """Return ``path`` without its last segment; the root stays the root."""
    if _is_string(path):
        if PATH_SEPARATOR not in path:
            return ""
        return path.rsplit(PATH_SEPARATOR, 1)[0]

    return path[:-1]


def last(path: Path) -> Any:
    """Return the final segment, ``None`` (sequences) or ``""`` (strings) at the root."""
    if _is_string(path):
        return path.rsplit(PATH_SEPARATOR, 1)[-1]

    if is_root(path):
        return None

    return path[-1]


def walk(path: Path) -> Iterator[Any]:
    """Iterate over the segments of a path."""
    if _is_string(path):
        if path:
            yield from path.split(PATH_SEPARATOR)
        return

    yield from path


def after(path: Path, base: Path) -> Optional[Tuple[Any, ...]]:
    """
    Return the segments of ``path`` that follow ``base``.

    ``None`` means ``path`` is not ``base`` or one of its descendants.
    """
    segments = tuple(walk(path))
    prefix = tuple(walk(base))

    if segments[: len(prefix)] != prefix:
        return None

    return segments[len(prefix) :]


def step(obj: Any, key: Any) -> Any:
    """Follow one segment: item access for containers, attribute access otherwise."""
    if isinstance(obj, Mapping):
        if key in obj:
            return obj[key]
        # Only instance attributes, never methods such as ``keys``
        return getattr(obj, "__dict__", {}).get(key, MISSING)

    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        if isinstance(key, str) and key.lstrip("-").isdigit():
            key = int(key)
        if isinstance(key, int):
            try:
                return obj[key]
            except IndexError:
                return MISSING

    if isinstance(key, str):
        try:
            return getattr(obj, key)
        except AttributeError:
            return MISSING

    return MISSING


def get(obj: Any, path: Path) -> Any:
    """Resolve ``path`` starting at ``obj``; ``MISSING`` when a step fails."""
    for key in walk(path):
        obj = step(obj, key)
        if obj is MISSING:
            break

    return obj


def render(path: Path, as_array: bool) -> Path:
    """Convert a path to the form reported to change callbacks."""
    if as_array:
        return list(walk(path))

    if _is_string(path):
        return path

    return PATH_SEPARATOR.join(str(key) for key in path)
