"""Expressions that build and transform array columns.

Array columns are :class:`pyarrow.ListArray` columns, each row
contains a list of values of the same type.

The expressions in this module expect their arguments
to already be of the final type, or at least castable to it,
as finding a common type for the elements is done by
:func:`framequery.datatypes.unify` when the expression is built.

>>> import pyarrow as pa
>>> from framequery.compute import col, lit
>>> from framequery.compute.arrays import MakeArrayExpression
>>> data = pa.record_batch({"a": [1, 2], "b": [3.5, None]})
>>> MakeArrayExpression(col("a"), col("b"), lit(0), type=pa.float64()).apply(data).to_pylist()
[[1.0, 3.5, 0.0], [2.0, None, 0.0]]
"""

import numpy as np
import pyarrow as pa
import pyarrow.compute as pc

from .base import Expression
from .expressions import apply_expression_if_needed, broadcast


def _apply_as_column(
    batch: pa.RecordBatch, arg: Expression, type: pa.DataType | None = None
) -> pa.Array:
    value = broadcast(apply_expression_if_needed(batch, arg), batch.num_rows)
    if type is not None and not value.type.equals(type):
        value = pc.cast(value, type)
    return value


class MakeArrayExpression(Expression):
    """Build an array for each row out of multiple values.

    Each element can be a column or a literal,
    the resulting row ``i`` contains the value of each
    element for row ``i`` in the order the elements were provided.
    """

    def __init__(self, *elements: Expression, type: pa.DataType) -> None:
        """
        :param elements: The expressions providing the elements.
        :param type: The type of the elements of the array.
        """
        self.elements = elements
        self.type = type

    def __str__(self) -> str:
        return f"MakeArray({','.join(map(str, self.elements))})"

    def apply(self, batch: pa.RecordBatch) -> pa.ListArray:
        num_rows = batch.num_rows
        num_elements = len(self.elements)
        if num_elements == 0:
            offsets = pa.array(np.zeros(num_rows + 1, dtype=np.int32))
            return pa.ListArray.from_arrays(offsets, pa.array([], type=self.type))

        columns = [_apply_as_column(batch, e, self.type) for e in self.elements]

        # All the columns are concatenated one after the other,
        # then we take the values row by row: for row i we want
        # the values at i, i + num_rows, i + 2 * num_rows ...
        values = pa.concat_arrays(columns)
        indices = (
            np.arange(num_rows)[:, None] + np.arange(num_elements)[None, :] * num_rows
        ).ravel()
        offsets = np.arange(0, num_rows * num_elements + 1, num_elements, dtype=np.int32)
        return pa.ListArray.from_arrays(pa.array(offsets), values.take(pa.array(indices)))


class ArrayConcatExpression(Expression):
    """Concatenate the arrays of each row.

    The result for a row is null when any of
    the concatenated arrays is null for that row.
    """

    def __init__(self, *args: Expression, type: pa.DataType) -> None:
        """
        :param args: The expressions providing the arrays to concatenate.
        :param type: The type of the resulting array.
        """
        self.args = args
        self.type = type

    def __str__(self) -> str:
        return f"ArrayConcat({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        columns = [_apply_as_column(batch, arg, self.type).to_pylist() for arg in self.args]
        result = []
        for row in zip(*columns):
            if any(value is None for value in row):
                result.append(None)
            else:
                result.append([v for value in row for v in value])
        return pa.array(result, type=self.type)


class ArrayRepeatExpression(Expression):
    """Repeat the array of each row multiple times.

    ``[1, 2]`` repeated ``2`` times becomes ``[1, 2, 1, 2]``,
    repeating zero or less times leads to an empty array.
    """

    def __init__(self, arg: Expression, times: int) -> None:
        self.arg = arg
        self.times = times

    def __str__(self) -> str:
        return f"ArrayRepeat({self.arg}, {self.times})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        column = _apply_as_column(batch, self.arg)
        times = max(self.times, 0)
        return pa.array(
            [None if row is None else row * times for row in column.to_pylist()],
            type=column.type,
        )


class ArrayLengthExpression(Expression):
    """Number of elements in the array of each row."""

    def __init__(self, arg: Expression) -> None:
        self.arg = arg

    def __str__(self) -> str:
        return f"ArrayLength({self.arg})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        column = _apply_as_column(batch, self.arg)
        return pc.cast(pc.list_value_length(column), pa.int64())
