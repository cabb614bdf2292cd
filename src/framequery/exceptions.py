"""Errors raised by FrameQuery.

All the errors share :class:`FrameQueryError` as their base class,
so that callers can catch any failure of the library at once.
Some of them also inherit from the matching builtin exception,
so that code expecting a ``TypeError`` or a ``KeyError`` keeps working.
"""


class FrameQueryError(Exception):
    """Base class for all FrameQuery errors."""


class ExpressionError(FrameQueryError):
    """An expression was built with invalid arguments.

    For example referencing a column that doesn't exist
    or using a non reduction as an aggregation metric.
    """


class TypeUnificationError(ExpressionError, TypeError):
    """No single data type is able to represent all the provided values.

    Raised when building arrays out of elements like ``[1, "a"]``.
    """


class UnsupportedOperationError(FrameQueryError):
    """The operation can't be expressed by the target engine or SQL dialect."""


class BackendError(FrameQueryError):
    """A backend could not be found, created or used."""


class IntegrityError(BackendError):
    """A DDL operation would violate the state of the backend.

    Like creating a table that already exists without ``overwrite=True``.
    """


class TableNotFoundError(BackendError, KeyError):
    """The requested table doesn't exist in the backend."""

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return str(self.args[0]) if self.args else ""
