"""
onchange Constants
==================

Reserved attribute names and sentinels shared by the proxy, cache and handler.
"""

# Escape hatches: reading these from a wrapper returns the underlying object.
TARGET = "__onchange_target__"
UNSUBSCRIBE = "__onchange_unsubscribe__"

# Attributes wrapt stores on the proxy itself rather than on the wrapped object.
PROXY_ATTRIBUTE_PREFIX = "_self_"

PATH_SEPARATOR = "."


class _Missing:
    """Sentinel for an absent attribute or item."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()
