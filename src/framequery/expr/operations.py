"""The operations that constitute a table expression.

Table expressions are lazy, calling methods on a :class:`framequery.Table`
doesn't touch any data, it builds a tree of operations that
describes the query. The tree can then be translated to a
compute engine query plan to run it, or rendered to SQL.

There are two families of operations:

* **Table operations** (:class:`TableOp`) produce tables,
  like :class:`Filter` or :class:`Join`. Each of them knows the
  :class:`pyarrow.Schema` of the table it produces.
* **Value operations** (:class:`ValueOp`) produce columns or scalars,
  like :class:`BinaryOp` or :class:`Reduction`. Each of them knows the
  :class:`pyarrow.DataType` of its result and its ``shape``.

For example ``t.filter(t.body_mass_g > 4000)`` would be represented as::

    Filter(
        parent=DatabaseTable(penguins),
        predicates=[BinaryOp(>, Field(body_mass_g), Literal(4000))]
    )

Types are computed when the operations are created,
so that invalid expressions are rejected immediately
and not when the query is executed.
"""

import abc
import copy
import itertools
from typing import Any, Callable, Iterator

import pyarrow as pa

from .. import datatypes
from ..compute.join import JOIN_KINDS, join_output_names
from ..exceptions import ExpressionError

COLUMNAR = "columnar"
SCALAR = "scalar"


class Op(abc.ABC):
    """Base class of every operation."""

    @abc.abstractmethod
    def children(self) -> tuple["Op", ...]:
        """The operations this one depends on."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str: ...

    def __repr__(self) -> str:
        return str(self)

    def walk(self) -> Iterator["Op"]:
        """Iterate over this operation and all its descendants."""
        yield self
        for child in self.children():
            yield from child.walk()


class ValueOp(Op):
    """An operation that computes a column or a scalar."""

    dtype: pa.DataType
    shape: str = COLUMNAR

    @property
    def name(self) -> str:
        """The default name of the column computed by this operation."""
        return str(self)

    def values(self) -> Iterator["ValueOp"]:
        """Walk the value operations, not entering subqueries or tables."""
        yield self
        for child in self.children():
            if isinstance(child, ValueOp):
                yield from child.values()


class TableOp(Op):
    """An operation that produces a table."""

    schema: pa.Schema

    def field(self, name: str) -> "Field":
        return Field(self, name)


#
# Value operations
#


class Field(ValueOp):
    """A column of a table."""

    def __init__(self, table: TableOp, name: str) -> None:
        if name not in table.schema.names:
            raise ExpressionError(
                f"Column {name!r} not found, available columns: {table.schema.names}"
            )
        self.table = table
        self.field_name = name
        self.dtype = table.schema.field(name).type

    @property
    def name(self) -> str:
        return self.field_name

    def children(self) -> tuple[Op, ...]:
        return ()

    def __str__(self) -> str:
        return self.field_name


class Literal(ValueOp):
    """A constant value."""

    shape = SCALAR

    def __init__(self, value: Any, dtype: pa.DataType | None = None) -> None:
        self.value = value
        self.dtype = datatypes.dtype(dtype) if dtype is not None else datatypes.infer(value)

    def children(self) -> tuple[Op, ...]:
        return ()

    def __str__(self) -> str:
        return repr(self.value)


def _shape_of(*ops: ValueOp) -> str:
    if any(op.shape == COLUMNAR for op in ops):
        return COLUMNAR
    return SCALAR


class BinaryOp(ValueOp):
    """An operator applied to two values, like ``a + b`` or ``a > b``."""

    ARITHMETIC = ("+", "-", "*", "/", "**")
    COMPARISON = ("==", "!=", ">", ">=", "<", "<=")
    LOGICAL = ("and", "or")

    def __init__(self, op: str, left: ValueOp, right: ValueOp) -> None:
        self.op = op
        self.left = left
        self.right = right
        self.shape = _shape_of(left, right)

        if op in self.COMPARISON:
            self.dtype = pa.bool_()
        elif op in self.LOGICAL:
            for side in (left, right):
                if not (pa.types.is_boolean(side.dtype) or pa.types.is_null(side.dtype)):
                    raise ExpressionError(f"{op!r} requires boolean values, got {side.dtype}")
            self.dtype = pa.bool_()
        elif op in self.ARITHMETIC:
            for side in (left, right):
                if not (datatypes.is_numeric(side.dtype) or pa.types.is_null(side.dtype)):
                    raise ExpressionError(f"{op!r} requires numeric values, got {side.dtype}")
            if op in ("/", "**"):
                self.dtype = pa.float64()
            else:
                self.dtype = datatypes.unify([left.dtype, right.dtype])
        else:
            raise ExpressionError(f"Unsupported operator: {op}")

    def children(self) -> tuple[Op, ...]:
        return (self.left, self.right)

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


class UnaryOp(ValueOp):
    """An operator applied to a single value, like ``-a`` or ``a.isnull()``."""

    OPERATORS = ("negate", "not", "isnull", "notnull", "abs")

    def __init__(self, op: str, arg: ValueOp) -> None:
        if op not in self.OPERATORS:
            raise ExpressionError(f"Unsupported operator: {op}")
        self.op = op
        self.arg = arg
        self.shape = arg.shape
        if op in ("isnull", "notnull", "not"):
            self.dtype = pa.bool_()
        else:
            self.dtype = arg.dtype

    def children(self) -> tuple[Op, ...]:
        return (self.arg,)

    def __str__(self) -> str:
        return f"{self.op}({self.arg})"


class Cast(ValueOp):
    def __init__(self, arg: ValueOp, to: pa.DataType) -> None:
        self.arg = arg
        self.dtype = datatypes.dtype(to)
        self.shape = arg.shape

    @property
    def name(self) -> str:
        return self.arg.name

    def children(self) -> tuple[Op, ...]:
        return (self.arg,)

    def __str__(self) -> str:
        return f"Cast({self.arg}, {self.dtype})"


class Reduction(ValueOp):
    """Reduce a column to a single value, like its mean.

    Inside an aggregation, the reduction is computed for each group.
    Anywhere else it's computed over the whole table and
    the result is available to every row, which allows
    to express things like ``t.x - t.x.mean()``.
    """

    shape = SCALAR
    KINDS = ("sum", "mean", "min", "max", "count", "std", "var")

    def __init__(self, how: str, arg: ValueOp, ddof: int = 1) -> None:
        if how not in self.KINDS:
            raise ExpressionError(f"Unsupported reduction: {how}")
        if arg.shape != COLUMNAR:
            raise ExpressionError(f"Unable to compute {how} of a scalar")
        if how in ("sum", "mean", "std", "var") and not datatypes.is_numeric(arg.dtype):
            raise ExpressionError(f"{how} requires a numeric column, got {arg.dtype}")
        self.how = how
        self.arg = arg
        self.ddof = ddof

        if how in ("mean", "std", "var"):
            self.dtype = pa.float64()
        elif how == "count":
            self.dtype = pa.int64()
        elif how == "sum":
            if pa.types.is_floating(arg.dtype):
                self.dtype = pa.float64()
            elif pa.types.is_unsigned_integer(arg.dtype):
                self.dtype = pa.uint64()
            else:
                self.dtype = pa.int64()
        else:
            self.dtype = arg.dtype

    @property
    def table(self) -> TableOp | None:
        return find_table(self)

    def children(self) -> tuple[Op, ...]:
        return (self.arg,)

    def __str__(self) -> str:
        return f"{self.how}({self.arg})"


class CountStar(ValueOp):
    """The number of rows of a table."""

    shape = SCALAR
    dtype = pa.int64()

    def __init__(self, table: TableOp) -> None:
        self.table = table

    @property
    def name(self) -> str:
        return "count"

    def children(self) -> tuple[Op, ...]:
        return ()

    def __str__(self) -> str:
        return "count(*)"


class RowNumber(ValueOp):
    """The position of each row, starting from 0."""

    dtype = pa.int64()

    @property
    def name(self) -> str:
        return "row_number"

    def children(self) -> tuple[Op, ...]:
        return ()

    def __str__(self) -> str:
        return "row_number()"


class ArrayValue(ValueOp):
    """An array built out of columns and literals.

    The type of the elements is the common type of
    all the provided values, when there is no common type
    :class:`framequery.exceptions.TypeUnificationError` is raised.
    """

    def __init__(self, elements: list[ValueOp], dtype: pa.DataType | None = None) -> None:
        self.elements = list(elements)
        if dtype is not None:
            self.dtype = datatypes.dtype(dtype)
            if not datatypes.is_array(self.dtype):
                raise ExpressionError(f"Array type expected, got {self.dtype}")
        else:
            self.dtype = pa.list_(datatypes.unify(e.dtype for e in self.elements))
        self.shape = _shape_of(*self.elements) if self.elements else SCALAR

    def children(self) -> tuple[Op, ...]:
        return tuple(self.elements)

    def __str__(self) -> str:
        return f"[{', '.join(map(str, self.elements))}]"


def _check_array(op: ValueOp) -> None:
    if not (datatypes.is_array(op.dtype) or pa.types.is_null(op.dtype)):
        raise ExpressionError(f"Array expected, got {op.dtype}")


class ArrayConcat(ValueOp):
    def __init__(self, args: list[ValueOp]) -> None:
        if len(args) < 2:
            raise ExpressionError("At least two arrays are required to concatenate")
        for arg in args:
            _check_array(arg)
        self.args = list(args)
        self.dtype = datatypes.unify(arg.dtype for arg in args)
        self.shape = _shape_of(*self.args)

    def children(self) -> tuple[Op, ...]:
        return tuple(self.args)

    def __str__(self) -> str:
        return f"ArrayConcat({', '.join(map(str, self.args))})"


class ArrayRepeat(ValueOp):
    def __init__(self, arg: ValueOp, times: int) -> None:
        _check_array(arg)
        if not isinstance(times, int) or isinstance(times, bool):
            raise ExpressionError("Arrays can only be repeated an integer number of times")
        self.arg = arg
        self.times = times
        self.dtype = arg.dtype
        self.shape = arg.shape

    def children(self) -> tuple[Op, ...]:
        return (self.arg,)

    def __str__(self) -> str:
        return f"ArrayRepeat({self.arg}, {self.times})"


class ArrayLength(ValueOp):
    dtype = pa.int64()

    def __init__(self, arg: ValueOp) -> None:
        _check_array(arg)
        self.arg = arg
        self.shape = arg.shape

    def children(self) -> tuple[Op, ...]:
        return (self.arg,)

    def __str__(self) -> str:
        return f"ArrayLength({self.arg})"


class UrlExtract(ValueOp):
    """Extract a part of an URL, like its host."""

    PARTS = (
        "protocol",
        "host",
        "port",
        "authority",
        "userinfo",
        "path",
        "file",
        "query",
        "fragment",
    )
    dtype = pa.string()

    def __init__(self, part: str, arg: ValueOp, key: str | None = None) -> None:
        if part not in self.PARTS:
            raise ExpressionError(f"Unsupported URL part: {part}")
        if not datatypes.is_string(arg.dtype):
            raise ExpressionError(f"URLs must be strings, got {arg.dtype}")
        if key is not None and part != "query":
            raise ExpressionError("A key can only be provided when extracting the query")
        self.part = part
        self.arg = arg
        self.key = key
        self.shape = arg.shape

    def children(self) -> tuple[Op, ...]:
        return (self.arg,)

    def __str__(self) -> str:
        key = "" if self.key is None else f", {self.key!r}"
        return f"Url{self.part.capitalize()}({self.arg}{key})"


class ScalarUDF(ValueOp):
    """A Python function applied to each row (or to whole columns if vectorized)."""

    def __init__(
        self,
        func: Callable,
        args: list[ValueOp],
        dtype: pa.DataType,
        func_name: str,
        vectorized: bool = False,
    ) -> None:
        self.func = func
        self.args = list(args)
        self.dtype = datatypes.dtype(dtype)
        self.func_name = func_name
        self.vectorized = vectorized
        self.shape = _shape_of(*self.args) if self.args else COLUMNAR

    def children(self) -> tuple[Op, ...]:
        return tuple(self.args)

    def __str__(self) -> str:
        return f"{self.func_name}({', '.join(map(str, self.args))})"


class SortKey:
    """How to sort by a value, not an operation by itself."""

    def __init__(self, arg: ValueOp, descending: bool = False) -> None:
        self.arg = arg
        self.descending = descending

    def __str__(self) -> str:
        return f"{'desc' if self.descending else 'asc'}({self.arg})"

    __repr__ = __str__


def find_table(op: ValueOp) -> TableOp | None:
    """Find the first table referenced by a value operation."""
    for value in op.values():
        if isinstance(value, (Field, CountStar)):
            return value.table
    return None


def substitute(op: ValueOp, replace: Callable[[ValueOp], ValueOp | None]) -> ValueOp:
    """Rebuild a value operation, replacing some of the values it is made of.

    ``replace`` is called on each value, from the outermost one,
    and returns the new value or ``None`` to keep it. The arguments
    of a replaced value are not visited.
    """
    replaced = replace(op)
    if replaced is not None:
        return replaced

    changes = {}
    for attr, value in vars(op).items():
        if isinstance(value, ValueOp):
            changes[attr] = substitute(value, replace)
        elif isinstance(value, (list, tuple)) and any(isinstance(v, ValueOp) for v in value):
            changes[attr] = type(value)(
                substitute(v, replace) if isinstance(v, ValueOp) else v for v in value
            )
    if all(changes[attr] is getattr(op, attr) for attr in changes):
        return op
    # Replacements have the same type, so the computed types still hold.
    rebuilt = copy.copy(op)
    vars(rebuilt).update(changes)
    return rebuilt


def is_analytic(op: ValueOp) -> bool:
    """If computing the value requires the whole table at once.

    That's the case of reductions used outside of aggregations
    and of row numbers.
    """
    return any(isinstance(v, (Reduction, CountStar, RowNumber)) for v in op.values())


#
# Table operations
#

_memtable_names = (f"memtable_{n}" for n in itertools.count())


class InMemoryTable(TableOp):
    """A table whose data is already available as a :class:`pyarrow.Table`."""

    def __init__(self, data: pa.Table, name: str | None = None) -> None:
        self.data = data
        self.name = name or next(_memtable_names)
        self.schema = data.schema

    def children(self) -> tuple[Op, ...]:
        return ()

    def __str__(self) -> str:
        return f"InMemoryTable({self.name})"


class DatabaseTable(TableOp):
    """A table that lives in a backend."""

    def __init__(self, name: str, schema: pa.Schema, source: Any) -> None:
        """
        :param name: The name of the table in the backend.
        :param schema: The schema of the table.
        :param source: The backend providing the table.
        """
        self.name = name
        self.schema = schema
        self.source = source

    def children(self) -> tuple[Op, ...]:
        return ()

    def __str__(self) -> str:
        return f"DatabaseTable({self.name})"


class Project(TableOp):
    """Compute a new set of columns out of a table."""

    def __init__(self, parent: TableOp, values: dict[str, ValueOp]) -> None:
        if not values:
            raise ExpressionError("At least one column must be selected")
        self.parent = parent
        self.values = dict(values)
        self.schema = pa.schema([(name, op.dtype) for name, op in self.values.items()])

    def children(self) -> tuple[Op, ...]:
        return (self.parent, *self.values.values())

    def __str__(self) -> str:
        values = ", ".join(f"{name}={op}" for name, op in self.values.items())
        return f"Project({values}, parent={self.parent})"


class Filter(TableOp):
    """Keep only the rows for which all the predicates are true."""

    def __init__(self, parent: TableOp, predicates: list[ValueOp]) -> None:
        for predicate in predicates:
            if not pa.types.is_boolean(predicate.dtype):
                raise ExpressionError(f"Predicates must be boolean, got {predicate.dtype}")
        self.parent = parent
        self.predicates = list(predicates)
        self.schema = parent.schema

    def children(self) -> tuple[Op, ...]:
        return (self.parent, *self.predicates)

    def __str__(self) -> str:
        return f"Filter({', '.join(map(str, self.predicates))}, parent={self.parent})"


class Aggregate(TableOp):
    """Group the rows by some values and compute metrics for each group."""

    def __init__(
        self, parent: TableOp, groups: dict[str, ValueOp], metrics: dict[str, ValueOp]
    ) -> None:
        if not metrics and not groups:
            raise ExpressionError("Aggregations require at least one group or metric")
        for name, metric in metrics.items():
            if not isinstance(metric, (Reduction, CountStar)):
                raise ExpressionError(
                    f"Metric {name!r} must be a reduction like sum or mean, got {metric}"
                )
        for name, group in groups.items():
            if group.shape != COLUMNAR:
                raise ExpressionError(f"Unable to group by scalar value {name!r}")
        self.parent = parent
        self.groups = dict(groups)
        self.metrics = dict(metrics)
        self.schema = pa.schema(
            [(name, op.dtype) for name, op in {**self.groups, **self.metrics}.items()]
        )

    def children(self) -> tuple[Op, ...]:
        return (self.parent, *self.groups.values(), *self.metrics.values())

    def __str__(self) -> str:
        groups = ", ".join(f"{name}={op}" for name, op in self.groups.items())
        metrics = ", ".join(f"{name}={op}" for name, op in self.metrics.items())
        return f"Aggregate(by=[{groups}], metrics=[{metrics}], parent={self.parent})"


class Sort(TableOp):
    def __init__(self, parent: TableOp, keys: list[SortKey]) -> None:
        if not keys:
            raise ExpressionError("At least one sort key is required")
        self.parent = parent
        self.keys = list(keys)
        self.schema = parent.schema

    def children(self) -> tuple[Op, ...]:
        return (self.parent, *(key.arg for key in self.keys))

    def __str__(self) -> str:
        return f"Sort({', '.join(map(str, self.keys))}, parent={self.parent})"


class Limit(TableOp):
    def __init__(self, parent: TableOp, n: int | None, offset: int = 0) -> None:
        if (n is not None and n < 0) or offset < 0:
            raise ExpressionError("Limit and offset must not be negative")
        self.parent = parent
        self.n = n
        self.offset = offset
        self.schema = parent.schema

    def children(self) -> tuple[Op, ...]:
        return (self.parent,)

    def __str__(self) -> str:
        return f"Limit(n={self.n}, offset={self.offset}, parent={self.parent})"


class Join(TableOp):
    """Combine the rows of two tables.

    Rows are combined when their keys are equal
    (``left_keys[i] == right_keys[i]`` for each ``i``) or based
    on a literal ``condition``: ``True`` combines each row with every
    other row, ``False`` never combines rows.
    """

    def __init__(
        self,
        left: TableOp,
        right: TableOp,
        how: str,
        left_keys: list[str],
        right_keys: list[str],
        condition: bool | None = None,
    ) -> None:
        if how not in JOIN_KINDS:
            raise ExpressionError(f"Unsupported join kind {how!r}, expected one of {JOIN_KINDS}")
        for key in left_keys:
            Field(left, key)
        for key in right_keys:
            Field(right, key)
        if how == "cross":
            if left_keys or condition is not None:
                raise ExpressionError("Cross joins accept no predicates")
        elif not left_keys and condition is None:
            raise ExpressionError("Joins require predicates, use cross_join otherwise")

        self.left = left
        self.right = right
        self.how = how
        self.left_keys = list(left_keys)
        self.right_keys = list(right_keys)
        self.condition = condition

        self.output = join_output_names(
            left.schema.names, right.schema.names, self.left_keys, self.right_keys, how
        )
        sides = {"left": left.schema, "right": right.schema}
        self.schema = pa.schema(
            [(output, sides[side].field(source).type) for side, source, output in self.output]
        )

    def children(self) -> tuple[Op, ...]:
        return (self.left, self.right)

    def __str__(self) -> str:
        if self.condition is not None:
            on = str(self.condition)
        else:
            on = ", ".join(f"{lk}=={rk}" for lk, rk in zip(self.left_keys, self.right_keys))
        return f"Join({self.how}, on=[{on}], left={self.left}, right={self.right})"


def find_backends(op: TableOp) -> list[Any]:
    """All the distinct backends providing tables to the expression."""
    backends = []
    for child in op.walk():
        if isinstance(child, DatabaseTable) and not any(
            child.source is b for b in backends
        ):
            backends.append(child.source)
    return backends


def output_name(table: TableOp, field: Field) -> str | None:
    """The name of the column of ``table`` carrying the values of ``field``.

    ``field`` can belong to ``table`` itself or to one of the tables
    it is built on, as long as the column went through unchanged.
    Columns coming from the right side of a join may have been renamed
    with a suffix, or merged with the left key they are equal to.
    ``None`` when the column isn't available in ``table``.
    """
    if table is field.table:
        return field.field_name
    elif isinstance(table, (Filter, Sort, Limit)):
        return output_name(table.parent, field)
    elif isinstance(table, (Project, Aggregate)):
        source = output_name(table.parent, field)
        if source is None:
            return None
        values = table.values if isinstance(table, Project) else table.groups
        for name, value in values.items():
            if (
                isinstance(value, Field)
                and value.table is table.parent
                and value.field_name == source
            ):
                return name
        return None
    elif isinstance(table, Join):
        for side, child in (("left", table.left), ("right", table.right)):
            source = output_name(child, field)
            if source is None:
                continue
            for output_side, output_source, output in table.output:
                if output_side == side and output_source == source:
                    return output
            if side == "right" and source in table.right_keys and table.how in ("inner", "left"):
                left_key = table.left_keys[table.right_keys.index(source)]
                return output_name(table, Field(table.left, left_key))
    return None
