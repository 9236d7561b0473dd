"""
onchange Exceptions
===================

Rejected mutations are not wrapped: the exception raised by the underlying
object (``AttributeError``, ``TypeError``, ``FrozenInstanceError``, ...) reaches
the caller unchanged. The classes below cover failures of the observer itself.
"""


class OnChangeError(Exception):
    """Base class for errors raised by the observation machinery."""

    pass


class SnapshotError(OnChangeError):
    """Raised when a container cannot be snapshotted before a mutating call."""

    pass
