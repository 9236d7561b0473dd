"""
Ignorable property keys.

A key is ignored when the observer is unsubscribed, when it is one of the
library's own markers, or when the options exclude it. Ignored keys are read
raw and never reported.
"""

from collections.abc import Hashable
from typing import Any

from ..constants import PROXY_ATTRIBUTE_PREFIX, TARGET, UNSUBSCRIBE


def is_symbol(key: Any) -> bool:
    """Keys other than names and indices (tuples, enum members, objects)."""
    return not isinstance(key, (str, int))


def is_internal_key(key: Any) -> bool:
    return isinstance(key, str) and (
        key in (TARGET, UNSUBSCRIBE) or key.startswith(PROXY_ATTRIBUTE_PREFIX)
    )


def ignore_property(cache, options, key: Any) -> bool:
    return (
        cache.is_unsubscribed
        or is_internal_key(key)
        or (options.ignore_symbols and is_symbol(key))
        or (
            options.ignore_underscores
            and isinstance(key, str)
            and key.startswith("_")
        )
        or (
            bool(options.ignore_keys)
            and isinstance(key, Hashable)
            and key in options.ignore_keys
        )
    )
