"""
Test utilities for onchange.

This package contains shared testing utilities and the sample types the tests
observe.
"""

from .memory_utils import assert_cleaned_up, assert_no_object_leak, count_types
from .samples import FrozenPoint, Inventory, Point, Registry, Tally, Todo

__all__ = [
    "assert_cleaned_up",
    "assert_no_object_leak",
    "count_types",
    "FrozenPoint",
    "Inventory",
    "Point",
    "Registry",
    "Tally",
    "Todo",
]
