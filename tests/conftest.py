"""
Shared pytest fixtures and configuration for onchange tests.
"""

import copy

import pytest


class ChangeRecorder:
    """Change callback that keeps a deep copy of every reported value."""

    def __init__(self):
        self.changes = []

    def __call__(self, path, value, previous, apply_data=None):
        self.changes.append(
            (path, copy.deepcopy(value), copy.deepcopy(previous), apply_data)
        )

    def __len__(self):
        return len(self.changes)

    @property
    def paths(self):
        return [change[0] for change in self.changes]

    @property
    def last(self):
        return self.changes[-1]

    def clear(self):
        self.changes.clear()


@pytest.fixture
def recorder():
    """Provide a fresh ChangeRecorder for each test."""
    return ChangeRecorder()
