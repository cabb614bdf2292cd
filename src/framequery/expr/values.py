"""Columns and scalars of table expressions.

:class:`Column` and :class:`Scalar` wrap a value operation
and provide the methods to build new operations out of it::

    >>> import framequery as fq
    >>> t = fq.memtable({"x": [1, 2, 3]}, name="t")
    >>> (t.x + 1).mean()
    Scalar(mean((x + 1))) :: double
"""

from typing import Any

import pandas as pd
import pyarrow as pa

from .. import datatypes
from ..config import options
from ..exceptions import ExpressionError
from . import operations as ops


def to_op(value: Any) -> ops.ValueOp:
    """Convert columns, scalars and python values to value operations."""
    if isinstance(value, Value):
        return value.op
    if isinstance(value, ops.ValueOp):
        return value
    return ops.Literal(value)


def wrap(op: ops.ValueOp, name: str | None = None) -> "Value":
    """Wrap a value operation in the matching user facing class."""
    if op.shape == ops.SCALAR:
        return Scalar(op, name)
    return Column(op, name)


class Value:
    """Base class for columns and scalars."""

    def __init__(self, op: ops.ValueOp, name: str | None = None) -> None:
        self.op = op
        self._name = name

    def get_name(self) -> str:
        """The name the value will have when selected in a table."""
        if self._name is not None:
            return self._name
        return self.op.name

    def type(self) -> pa.DataType:
        return self.op.dtype

    def name(self, name: str) -> "Value":
        """Rename the value."""
        return self.__class__(self.op, name)

    def __repr__(self) -> str:
        if options.interactive:
            return repr(self.execute())
        return f"{self.__class__.__name__}({self.op}) :: {self.op.dtype}"

    def __bool__(self) -> bool:
        raise ExpressionError(
            "The truth value of an expression is not defined, use & and | to combine predicates"
        )

    __hash__ = object.__hash__

    def _binary(self, op: str, other: Any, reflected: bool = False) -> "Value":
        left, right = self.op, to_op(other)
        if reflected:
            left, right = right, left
        return wrap(ops.BinaryOp(op, left, right))

    def __add__(self, other: Any) -> "Value":
        if datatypes.is_array(self.op.dtype):
            return self.concat(other)
        return self._binary("+", other)

    def __radd__(self, other: Any) -> "Value":
        if datatypes.is_array(self.op.dtype):
            return wrap(ops.ArrayConcat([to_op(other), self.op]))
        return self._binary("+", other, reflected=True)

    def __sub__(self, other: Any) -> "Value":
        return self._binary("-", other)

    def __rsub__(self, other: Any) -> "Value":
        return self._binary("-", other, reflected=True)

    def __mul__(self, other: Any) -> "Value":
        if datatypes.is_array(self.op.dtype):
            return self.repeat(other)
        return self._binary("*", other)

    def __rmul__(self, other: Any) -> "Value":
        if datatypes.is_array(self.op.dtype):
            return self.repeat(other)
        return self._binary("*", other, reflected=True)

    def __truediv__(self, other: Any) -> "Value":
        return self._binary("/", other)

    def __rtruediv__(self, other: Any) -> "Value":
        return self._binary("/", other, reflected=True)

    def __pow__(self, other: Any) -> "Value":
        return self._binary("**", other)

    def __rpow__(self, other: Any) -> "Value":
        return self._binary("**", other, reflected=True)

    def __eq__(self, other: Any) -> "Value":  # type: ignore[override]
        return self._binary("==", other)

    def __ne__(self, other: Any) -> "Value":  # type: ignore[override]
        return self._binary("!=", other)

    def __gt__(self, other: Any) -> "Value":
        return self._binary(">", other)

    def __ge__(self, other: Any) -> "Value":
        return self._binary(">=", other)

    def __lt__(self, other: Any) -> "Value":
        return self._binary("<", other)

    def __le__(self, other: Any) -> "Value":
        return self._binary("<=", other)

    def __and__(self, other: Any) -> "Value":
        return self._binary("and", other)

    def __rand__(self, other: Any) -> "Value":
        return self._binary("and", other, reflected=True)

    def __or__(self, other: Any) -> "Value":
        return self._binary("or", other)

    def __ror__(self, other: Any) -> "Value":
        return self._binary("or", other, reflected=True)

    def __invert__(self) -> "Value":
        return wrap(ops.UnaryOp("not", self.op))

    def __neg__(self) -> "Value":
        return wrap(ops.UnaryOp("negate", self.op))

    def __abs__(self) -> "Value":
        return self.abs()

    def abs(self) -> "Value":
        return wrap(ops.UnaryOp("abs", self.op))

    def isnull(self) -> "Value":
        return wrap(ops.UnaryOp("isnull", self.op))

    def notnull(self) -> "Value":
        return wrap(ops.UnaryOp("notnull", self.op))

    def cast(self, to: str | pa.DataType) -> "Value":
        """Convert the value to a different type.

        The name of the value is preserved::

            t.body_mass_g.cast("float64")
        """
        return self.__class__(ops.Cast(self.op, to), self._name)

    def asc(self) -> ops.SortKey:
        return ops.SortKey(self.op)

    def desc(self) -> ops.SortKey:
        return ops.SortKey(self.op, descending=True)

    # Arrays

    def concat(self, *others: Any) -> "Value":
        """Concatenate arrays, ``[1, 2, 3]`` and ``[4, 5]`` become ``[1, 2, 3, 4, 5]``."""
        return wrap(ops.ArrayConcat([self.op, *map(to_op, others)]))

    def repeat(self, times: int) -> "Value":
        """Repeat the array, ``[1, 2]`` repeated twice becomes ``[1, 2, 1, 2]``."""
        return wrap(ops.ArrayRepeat(self.op, times))

    def length(self) -> "Value":
        return wrap(ops.ArrayLength(self.op))

    # URLs

    def protocol(self) -> "Value":
        return wrap(ops.UrlExtract("protocol", self.op))

    def host(self) -> "Value":
        return wrap(ops.UrlExtract("host", self.op))

    def port(self) -> "Value":
        return wrap(ops.UrlExtract("port", self.op))

    def authority(self) -> "Value":
        return wrap(ops.UrlExtract("authority", self.op))

    def userinfo(self) -> "Value":
        return wrap(ops.UrlExtract("userinfo", self.op))

    def path(self) -> "Value":
        return wrap(ops.UrlExtract("path", self.op))

    def file(self) -> "Value":
        """The path of the URL followed by its query string."""
        return wrap(ops.UrlExtract("file", self.op))

    def query(self, key: str | None = None) -> "Value":
        """The query string of the URL, or the value of one of its parameters."""
        return wrap(ops.UrlExtract("query", self.op, key))

    def fragment(self) -> "Value":
        return wrap(ops.UrlExtract("fragment", self.op))

    def as_table(self):
        """A table with the value as its only column."""
        from .table import Table

        table = ops.find_table(self.op)
        if table is None:
            table = ops.InMemoryTable(pa.table({"_": pa.nulls(1)}))
        return Table(ops.Project(table, {self.get_name(): self.op}))


class Column(Value):
    """A column of a table, or an expression computing a value for each row."""

    def sum(self) -> "Scalar":
        return Scalar(ops.Reduction("sum", self.op))

    def mean(self) -> "Scalar":
        return Scalar(ops.Reduction("mean", self.op))

    def min(self) -> "Scalar":
        return Scalar(ops.Reduction("min", self.op))

    def max(self) -> "Scalar":
        return Scalar(ops.Reduction("max", self.op))

    def count(self) -> "Scalar":
        """The number of non null values."""
        return Scalar(ops.Reduction("count", self.op))

    def std(self, how: str = "sample") -> "Scalar":
        """The standard deviation.

        :param how: ``"sample"`` for the sample standard deviation,
                    ``"pop"`` for the population one.
        """
        return Scalar(ops.Reduction("std", self.op, ddof=_ddof(how)))

    def var(self, how: str = "sample") -> "Scalar":
        return Scalar(ops.Reduction("var", self.op, ddof=_ddof(how)))

    def execute(self) -> pd.Series:
        return self.as_table().execute()[self.get_name()]

    def to_pyarrow(self) -> pa.ChunkedArray:
        return self.as_table().to_pyarrow().column(0)


class Scalar(Value):
    """A single value, like a literal or a reduction."""

    def execute(self) -> Any:
        if isinstance(self.op, ops.Literal):
            return self.op.value
        return self.to_pyarrow().as_py()

    def to_pyarrow(self) -> pa.Scalar:
        return self._single_row().to_pyarrow().column(0)[0]

    def _single_row(self):
        """A table with a single row holding the value.

        The reductions the value is made of are computed by an
        aggregation, which has one row even when the table is empty,
        then the value is computed out of their results.
        """
        from .table import Table

        table = ops.find_table(self.op)
        if table is None:
            return self.as_table()

        reductions: list[ops.ValueOp] = []

        def collect(op: ops.ValueOp) -> ops.ValueOp | None:
            if isinstance(op, (ops.Reduction, ops.CountStar)):
                reductions.append(op)
                return op
            return None

        ops.substitute(self.op, collect)
        if not reductions:
            return self.as_table().limit(1)
        metrics = {f"__value_{idx}": op for idx, op in enumerate(reductions)}
        aggregate = ops.Aggregate(table, {}, metrics)

        def to_result(op: ops.ValueOp) -> ops.ValueOp | None:
            for name, reduction in metrics.items():
                if op is reduction:
                    return ops.Field(aggregate, name)
            return None

        value = ops.substitute(self.op, to_result)
        return Table(ops.Project(aggregate, {self.get_name(): value}))


def _ddof(how: str) -> int:
    if how == "sample":
        return 1
    elif how == "pop":
        return 0
    raise ExpressionError(f"Unsupported deviation kind {how!r}, expected 'sample' or 'pop'")
