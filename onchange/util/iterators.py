"""
Iterator Wrapping
=================

Values produced while iterating an observed container pass through the same
preparation step as an ordinary read, so elements reached by iteration are
wrapped lazily, one at a time, as the iterator is drained.

One-shot iterators are wrapped in a generator. Dict views stay views: they are
proxied so ``len()``, ``in`` and set operations keep working, and only their
iteration is intercepted.
"""

from collections.abc import ItemsView, Iterator, KeysView, ValuesView
from functools import partial
from typing import Any, Callable, Optional

from ..proxy import ObservedView


def is_iterator(value: Any) -> bool:
    return isinstance(value, (Iterator, KeysView, ValuesView, ItemsView))


def _kind_of(iterable: Any, name: str) -> str:
    if isinstance(iterable, ItemsView):
        return "items"
    if isinstance(iterable, ValuesView):
        return "values"
    if name in ("items", "values"):
        return name
    return "keys"


def _prepare_all(
    iterator: Iterator,
    reverse: bool,
    *,
    kind: str,
    target: Any,
    base_path: Any,
    prepare: Callable,
    owner: Any = None,
) -> Iterator:
    # owner stays referenced by this frame until the iterator is exhausted
    if kind == "items":
        for key, value in iterator:
            yield (
                prepare(key, target, key, base_path),
                prepare(value, target, key, base_path),
            )
    elif kind == "values":
        keys = reversed(target) if reverse else iter(target)
        for key, value in zip(keys, iterator):
            yield prepare(value, target, key, base_path)
    elif kind == "indices":
        size = len(target) if reverse else 0
        for offset, value in enumerate(iterator):
            index = size - 1 - offset if reverse else offset
            yield prepare(value, target, index, base_path)
    else:
        for value in iterator:
            yield prepare(value, target, value, base_path)


def wrap_iterator(
    iterable: Any,
    name: str,
    target: Any,
    base_path: Any,
    prepare: Callable,
    owner: Any = None,
    kind: Optional[str] = None,
    reverse: bool = False,
) -> Any:
    """
    Wrap an iterator or view returned by ``target.<name>()``.

    Args:
        iterable: The raw iterator or dict view.
        name: Name of the method that produced it.
        target: The underlying container being iterated.
        base_path: Path of the container; element paths are built below it.
        prepare: ``prepare(value, target, key, base_path)`` value preparation.
        owner: Kept alive for the lifetime of the wrapper (the receiver proxy),
            so the container's recorded path stays known while iterating.
        kind: ``"keys"``, ``"values"``, ``"items"`` or ``"indices"``; derived from
            the iterable and ``name`` when omitted.
        reverse: True when ``iterable`` runs from the end of ``target``.
    """
    prepare_iterator = partial(
        _prepare_all,
        kind=kind or _kind_of(iterable, name),
        target=target,
        base_path=base_path,
        prepare=prepare,
        owner=owner,
    )

    if isinstance(iterable, Iterator):
        return prepare_iterator(iterable, reverse)

    return ObservedView(iterable, prepare_iterator)
