"""
onchange Options - Observer Configuration
=========================================

Keyword arguments accepted by ``observe()``, collected into a frozen dataclass
once per observed root and shared by every wrapper of that root.
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, FrozenSet, Union

from .util.equality import same_value


@dataclass(frozen=True)
class Options:
    """
    Observer configuration.

    Attributes:
        equals: Change predicate ``equals(previous, value)``; a write whose value
            is equal to the previous one is not reported.
        is_shallow: Only wrap root-level values and container methods.
        path_as_array: Report paths as lists instead of dotted strings.
        ignore_symbols: Ignore keys that are neither ``str`` nor ``int``.
        ignore_underscores: Ignore ``str`` keys starting with ``_``.
        ignore_detached: Stop reporting for values no longer reachable from
            the root.
        details: ``True``, or the names of container methods whose effects are
            reported per key instead of as one method-call notification.
        ignore_keys: Keys that are never wrapped or reported.
    """

    equals: Callable[[Any, Any], bool] = same_value
    is_shallow: bool = False
    path_as_array: bool = False
    ignore_symbols: bool = False
    ignore_underscores: bool = False
    ignore_detached: bool = False
    details: Union[bool, FrozenSet[str]] = False
    ignore_keys: FrozenSet[Any] = frozenset()

    @classmethod
    def from_kwargs(cls, **kwargs: Any) -> "Options":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            raise TypeError(f"Unknown observe() option(s): {', '.join(unknown)}")

        details = kwargs.get("details", False)
        if not isinstance(details, bool):
            kwargs["details"] = frozenset(details)
        if "ignore_keys" in kwargs:
            kwargs["ignore_keys"] = frozenset(kwargs["ignore_keys"])

        return cls(**kwargs)

    def includes_details(self, name: Any) -> bool:
        """True when calls to method ``name`` are reported per key."""
        if isinstance(self.details, bool):
            return self.details
        return name in self.details
