"""Values computed on each record batch.

:class:`FilterNode` evaluates a boolean expression to decide
which rows to keep, :class:`ProjectNode` evaluates one expression
for each new column, like ``body_mass_g / 1000``.

Expressions form a tree, a ``FunctionCallExpression`` receives
other expressions as arguments and evaluates them first.
Expressions on arrays and URLs are in :mod:`.arrays` and :mod:`.urls`.
"""

from typing import Any, Callable

import numpy as np
import pyarrow as pa
import pyarrow.compute as pc

from .. import utils
from .base import Expression


def apply_expression_if_needed(batch: pa.RecordBatch, o: Any) -> Any:
    """Evaluate ``o`` on the batch if it is an expression.

    Anything else (arrays, scalars, plain python values)
    is returned unchanged.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


def broadcast(value: Any, length: int) -> pa.Array:
    """Make sure that the value is a column of the given length.

    Scalars are repeated ``length`` times, arrays are returned as they are.
    """
    if isinstance(value, pa.ChunkedArray):
        return value.combine_chunks()
    if isinstance(value, pa.Array):
        return value
    if not isinstance(value, pa.Scalar):
        value = pa.scalar(value)
    return pa.repeat(value, length)


class FunctionCallExpression(Expression):
    """Call a function, usually from :mod:`pyarrow.compute`, on its arguments.

    Arguments that are expressions are evaluated on the batch
    before the call, the others are passed as they are::

        FunctionCallExpression(pyarrow.compute.multiply, ColumnRef("flipper_length_mm"), 10)

    """

    def __init__(self, func: Callable, *args: Expression | Any) -> None:
        """
        :param func: The function to call.
        :param args: Expressions or values passed to ``func``.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Evaluate the arguments on the batch and call the function with them."""
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        return self.func(*args)


class CastExpression(Expression):
    """Convert the result of an expression to a different type."""

    def __init__(self, arg: Expression, type: pa.DataType) -> None:
        self.arg = arg
        self.type = type

    def __str__(self) -> str:
        return f"Cast({self.arg}, {self.type})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        value = apply_expression_if_needed(batch, self.arg)
        if isinstance(value, pa.Scalar):
            return value.cast(self.type)
        return pc.cast(value, self.type)


class ReductionExpression(Expression):
    """Reduce a column to a single value.

    Reductions compute a value out of all the rows of the batch,
    like the mean of a column. They are used in projections
    to compare each row against the whole data, for example
    to normalize a column::

        (x - mean(x)) / std(x)

    As they work on a single batch, the batches must be
    combined (see :class:`.combine.CombineBatchesNode`) when
    the reduction must span the whole dataset.
    """

    FUNCTIONS = {
        "sum": pc.sum,
        "mean": pc.mean,
        "min": pc.min,
        "max": pc.max,
        "count": pc.count,
        "std": pc.stddev,
        "var": pc.variance,
    }

    def __init__(self, how: str, arg: Expression, ddof: int = 1) -> None:
        """
        :param how: The name of the reduction, one of :attr:`FUNCTIONS`.
        :param arg: The expression providing the data to reduce.
        :param ddof: Delta degrees of freedom for ``std`` and ``var``.
        """
        if how not in self.FUNCTIONS:
            raise ValueError(f"Unsupported reduction: {how}")
        self.how = how
        self.arg = arg
        self.ddof = ddof

    def __str__(self) -> str:
        return f"Reduction({self.how}, {self.arg})"

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        data = apply_expression_if_needed(batch, self.arg)
        if isinstance(data, pa.Scalar):
            data = broadcast(data, batch.num_rows)
        func = self.FUNCTIONS[self.how]
        if self.how in ("std", "var"):
            return func(data, ddof=self.ddof)
        return func(data)


class RowNumberExpression(Expression):
    """The position of each row in the batch, starting from 0."""

    def __str__(self) -> str:
        return "RowNumber()"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        return pa.array(np.arange(batch.num_rows, dtype=np.int64))


class UDFExpression(Expression):
    """Apply a user provided Python function.

    By default the function is invoked once for every row
    with the Python values of the arguments for that row
    (``None`` for nulls).

    When ``vectorized=True`` the function is invoked once
    with the whole :class:`pyarrow.Array` of each argument
    and must return an array with the same length.
    """

    def __init__(
        self,
        func: Callable,
        *args: Expression | Any,
        type: pa.DataType,
        vectorized: bool = False,
    ) -> None:
        self.func = func
        self.args = args
        self.type = type
        self.vectorized = vectorized

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"UDF:{func_qualname}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        args = [
            broadcast(apply_expression_if_needed(batch, arg), batch.num_rows)
            for arg in self.args
        ]
        if self.vectorized:
            result = self.func(*args)
            if not isinstance(result, (pa.Array, pa.ChunkedArray)):
                result = pa.array(result)
            return pc.cast(result, self.type)

        if not args:
            return pa.array([self.func() for _ in range(batch.num_rows)], type=self.type)

        values = [arg.to_pylist() for arg in args]
        return pa.array([self.func(*row) for row in zip(*values)], type=self.type)
