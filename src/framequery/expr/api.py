"""Functions to build tables and values that don't start from a table."""

from typing import Any

import pandas as pd
import pyarrow as pa

from ..exceptions import ExpressionError
from . import operations as ops
from .table import Table
from .values import Column, Scalar, Value, to_op, wrap


def memtable(
    data: Any, schema: pa.Schema | None = None, name: str | None = None
) -> Table:
    """Create a table out of in memory data.

    ``data`` can be a :class:`pyarrow.Table`, a :class:`pyarrow.RecordBatch`,
    a :class:`pandas.DataFrame`, a dict of columns or a list of rows (dicts).

    >>> t = memtable({"x": [1, 2], "y": ["a", "b"]})
    >>> t.columns
    ['x', 'y']
    """
    if isinstance(data, pa.RecordBatch):
        data = pa.Table.from_batches([data])
    elif isinstance(data, pd.DataFrame):
        data = pa.Table.from_pandas(data, preserve_index=False)
    elif isinstance(data, dict):
        data = pa.table(data)
    elif isinstance(data, list):
        data = pa.Table.from_pylist(data)
    elif not isinstance(data, pa.Table):
        raise ExpressionError(f"Unable to create a table from {type(data).__name__}")

    if schema is not None:
        data = data.cast(schema)
    return Table(ops.InMemoryTable(data, name))


def literal(value: Any, type: str | pa.DataType | None = None) -> Scalar:
    """A constant value, like ``literal(1)`` or ``literal(True)``."""
    return Scalar(ops.Literal(value, type))


def array(values: list[Any], type: str | pa.DataType | None = None) -> Value:
    """Build an array out of columns and literal values.

    Literals and columns can be mixed as far as
    a type able to hold all of them exists::

        array([t.bill_length_mm, 1])  # array<double>
        array([t.species, 1])  # TypeUnificationError

    When only literals are provided the result is a scalar.
    """
    if isinstance(values, Value):
        return values
    return wrap(ops.ArrayValue([to_op(v) for v in values], type))


def row_number() -> Column:
    """The position of each row of the table, starting from 0."""
    return Column(ops.RowNumber())


def asc(key: Any) -> ops.SortKey:
    """Sort by ``key`` in ascending order."""
    if isinstance(key, str):
        return ops.SortKey(key)
    return ops.SortKey(to_op(key))


def desc(key: Any) -> ops.SortKey:
    """Sort by ``key`` in descending order."""
    if isinstance(key, str):
        return ops.SortKey(key, descending=True)
    return ops.SortKey(to_op(key), descending=True)
