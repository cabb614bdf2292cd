"""The Table expression.

A :class:`Table` is the entry point to build queries.
All its methods return a new Table and nothing is computed
until the result is requested with :meth:`Table.to_pyarrow`,
:meth:`Table.execute` or printed in interactive mode::

    >>> import framequery as fq
    >>> t = fq.memtable({"species": ["Adelie", "Gentoo", "Adelie"], "body_mass_g": [3750, 5000, 3800]})
    >>> expr = t.group_by("species").aggregate(avg=t.body_mass_g.mean()).order_by("species")
    >>> expr.to_pylist()
    [{'species': 'Adelie', 'avg': 3775.0}, {'species': 'Gentoo', 'avg': 5000.0}]
"""

from typing import Any, Iterable

import pandas as pd
import pyarrow as pa

from .. import datatypes
from ..config import get_default_backend, options
from ..exceptions import BackendError, ExpressionError
from ..selectors import Across, Selector
from ..utils.tabulate import tabulate
from . import operations as ops
from .values import Column, Scalar, Value, to_op, wrap


class Table:
    """A lazy table expression."""

    def __init__(self, op: ops.TableOp) -> None:
        self.op = op

    def schema(self) -> pa.Schema:
        return self.op.schema

    @property
    def columns(self) -> list[str]:
        return list(self.op.schema.names)

    def __getattr__(self, name: str) -> Column:
        if name.startswith("_") or name == "op":
            raise AttributeError(name)
        if name in self.op.schema.names:
            return Column(ops.Field(self.op, name))
        raise AttributeError(f"Table has no attribute or column {name!r}")

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, str):
            return Column(ops.Field(self.op, key))
        elif isinstance(key, int):
            return Column(ops.Field(self.op, self.columns[key]))
        elif isinstance(key, (list, tuple, Selector)):
            return self.select(key)
        elif isinstance(key, slice):
            if key.step not in (None, 1):
                raise ExpressionError("Slicing with a step is not supported")
            start = key.start or 0
            n = None if key.stop is None else max(key.stop - start, 0)
            return self.limit(n, offset=start)
        elif isinstance(key, Value):
            return self.filter(key)
        raise ExpressionError(f"Unsupported table item {key!r}")

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | {n for n in self.columns if n.isidentifier()})

    def __repr__(self) -> str:
        if options.interactive:
            return tabulate(
                self.to_pyarrow(),
                max_rows=options.repr.max_rows,
                max_string_length=options.repr.max_string_length,
            )
        fields = "\n".join(f"  {field.name}: {field.type}" for field in self.op.schema)
        return f"{self.op}\n{fields}"

    def _bind_value(self, value: Any) -> ops.ValueOp:
        """Make sure a value can be computed on this table.

        Columns of the tables this one is built on are
        replaced by the matching column of this table.
        """
        if isinstance(value, str):
            return ops.Field(self.op, value)
        return ops.substitute(to_op(value), self._rebind_field)

    def _rebind_field(self, op: ops.ValueOp) -> ops.ValueOp | None:
        if not isinstance(op, ops.Field) or op.table is self.op:
            return None
        name = ops.output_name(self.op, op)
        if name is None and any(table is op.table for table in self.op.walk()):
            # The column was recomputed, like by mutate(), refer to the new one.
            if op.field_name in self.columns and self.op.schema.field(
                op.field_name
            ).type.equals(op.dtype):
                name = op.field_name
        if name is None:
            raise ExpressionError(f"Column {op.field_name!r} does not belong to the table")
        return ops.Field(self.op, name)

    def _bind(self, exprs: Iterable[Any], named: dict[str, Any]) -> dict[str, ops.ValueOp]:
        """Resolve names, selectors and values to ``{name: operation}``."""
        values: dict[str, ops.ValueOp] = {}
        for expr in exprs:
            if isinstance(expr, (list, tuple)):
                values.update(self._bind(expr, {}))
            elif isinstance(expr, str):
                values[expr] = self._bind_value(expr)
            elif isinstance(expr, Selector):
                for name in expr.expand(self):
                    values[name] = ops.Field(self.op, name)
            elif isinstance(expr, Across):
                values.update(self._bind((), expr.expand(self)))
            elif isinstance(expr, Value):
                op = self._bind_value(expr)
                # Columns of joined tables are named as they are in the join.
                values[op.name if expr._name is None else expr._name] = op
            else:
                raise ExpressionError(f"Unable to select {expr!r}")
        for name, expr in named.items():
            values[name] = self._bind_value(expr)
        return values

    def _names(self, exprs: Iterable[Any]) -> list[str]:
        names = []
        for expr in exprs:
            if isinstance(expr, str):
                ops.Field(self.op, expr)
                names.append(expr)
            elif isinstance(expr, Selector):
                names.extend(expr.expand(self))
            elif isinstance(expr, (list, tuple)):
                names.extend(self._names(expr))
            elif isinstance(expr, Column) and isinstance(expr.op, ops.Field):
                names.append(expr.op.field_name)
            else:
                raise ExpressionError(f"Expected a column name or a selector, got {expr!r}")
        return list(dict.fromkeys(names))

    def select(self, *exprs: Any, **named: Any) -> "Table":
        """Select columns or compute new ones.

        Columns can be provided by name, as expressions
        or as selectors, named expressions are provided as keyword arguments::

            t.select("species", s.numeric(), mass_kg=t.body_mass_g / 1000)
        """
        return Table(ops.Project(self.op, self._bind(exprs, named)))

    def mutate(self, *exprs: Any, **named: Any) -> "Table":
        """Add new columns to the table, or replace existing ones.

        Replaced columns keep their position.
        """
        values = {name: ops.Field(self.op, name) for name in self.columns}
        values.update(self._bind(exprs, named))
        return Table(ops.Project(self.op, values))

    def drop(self, *names: Any) -> "Table":
        dropped = set(self._names(names))
        return Table(
            ops.Project(
                self.op,
                {name: ops.Field(self.op, name) for name in self.columns if name not in dropped},
            )
        )

    def rename(self, mapping: dict[str, str] | None = None, /, **new_to_old: str) -> "Table":
        """Rename columns.

        Accepts ``new_name="old_name"`` keyword arguments, or
        a ``{"new_name": "old_name"}`` dict for names that are
        not valid python identifiers.
        """
        renames = {**(mapping or {}), **new_to_old}
        old_to_new = {}
        for new, old in renames.items():
            ops.Field(self.op, old)
            old_to_new[old] = new
        return Table(
            ops.Project(
                self.op,
                {old_to_new.get(name, name): ops.Field(self.op, name) for name in self.columns},
            )
        )

    def cast(self, types: dict[str, str | pa.DataType] | pa.Schema) -> "Table":
        """Convert columns to different types, like ``t.cast({"year": "int16"})``."""
        if isinstance(types, pa.Schema):
            types = {field.name: field.type for field in types}
        values = {name: ops.Field(self.op, name) for name in self.columns}
        for name, type in types.items():
            values[name] = ops.Cast(ops.Field(self.op, name), datatypes.dtype(type))
        return Table(ops.Project(self.op, values))

    def filter(self, *predicates: Any) -> "Table":
        """Keep the rows for which all the predicates are true.

        Rows where a predicate is null are discarded.
        """
        if not predicates:
            raise ExpressionError("At least one predicate is required")
        return Table(ops.Filter(self.op, [self._bind_value(p) for p in predicates]))

    def drop_null(self, *subset: Any) -> "Table":
        """Remove the rows that have a null in any of the given columns (all by default)."""
        names = self._names(subset) if subset else self.columns
        return Table(
            ops.Filter(self.op, [ops.UnaryOp("notnull", ops.Field(self.op, n)) for n in names])
        )

    def group_by(self, *keys: Any, **named_keys: Any) -> "GroupedTable":
        groups = self._bind(keys, named_keys)
        if not groups:
            raise ExpressionError("At least one grouping key is required")
        return GroupedTable(self, groups)

    def aggregate(self, metrics: Any = (), /, by: Any = (), **named_metrics: Any) -> "Table":
        """Compute metrics, optionally grouping the rows by some keys.

        Without keys the result contains a single row.
        """
        if not isinstance(metrics, (list, tuple)):
            metrics = [metrics]
        if not isinstance(by, (list, tuple)):
            by = [by]
        groups = self._bind(by, {})
        return Table(ops.Aggregate(self.op, groups, self._bind(metrics, named_metrics)))

    def order_by(self, *keys: Any) -> "Table":
        """Sort the table.

        Keys can be column names, expressions (sorted ascending)
        or the result of :func:`desc` and :func:`asc`::

            t.order_by("species", fq.desc("body_mass_g"))
        """
        sort_keys = []
        for key in keys:
            if isinstance(key, (list, tuple)):
                sort_keys.extend(self.order_by(*key).op.keys)
            elif isinstance(key, ops.SortKey):
                arg = ops.Field(self.op, key.arg) if isinstance(key.arg, str) else key.arg
                sort_keys.append(ops.SortKey(self._bind_value(arg), key.descending))
            else:
                sort_keys.append(ops.SortKey(self._bind_value(key)))
        return Table(ops.Sort(self.op, sort_keys))

    def limit(self, n: int | None, offset: int = 0) -> "Table":
        return Table(ops.Limit(self.op, n, offset))

    def head(self, n: int = 5) -> "Table":
        return self.limit(n)

    def count(self) -> Scalar:
        """The number of rows."""
        return Scalar(ops.CountStar(self.op))

    def _join_predicates(
        self, right: "Table", predicates: Any
    ) -> tuple[list[str], list[str], bool | None]:
        if not isinstance(predicates, (list, tuple)):
            predicates = [predicates]

        left_keys: list[str] = []
        right_keys: list[str] = []
        literals: list[bool] = []
        for predicate in predicates:
            if isinstance(predicate, Value) and isinstance(predicate.op, ops.Literal):
                predicate = predicate.op.value
            if isinstance(predicate, bool):
                literals.append(predicate)
            elif isinstance(predicate, str):
                left_keys.append(predicate)
                right_keys.append(predicate)
            elif isinstance(predicate, tuple) and len(predicate) == 2:
                lk, rk = predicate
                left_keys.append(self._key_name(lk, self))
                right_keys.append(self._key_name(rk, right))
            elif isinstance(predicate, Value) and isinstance(predicate.op, ops.BinaryOp):
                lk, rk = self._equality_keys(predicate.op, right)
                left_keys.append(lk)
                right_keys.append(rk)
            else:
                raise ExpressionError(f"Unsupported join predicate {predicate!r}")

        condition = None
        if False in literals:
            # Nothing can match, the keys are irrelevant.
            left_keys, right_keys, condition = [], [], False
        elif literals and not left_keys:
            condition = True
        return left_keys, right_keys, condition

    @staticmethod
    def _key_name(key: Any, table: "Table") -> str:
        if isinstance(key, Column) and isinstance(key.op, ops.Field):
            key = key.op.field_name
        if not isinstance(key, str):
            raise ExpressionError(f"Join keys must be columns, got {key!r}")
        ops.Field(table.op, key)
        return key

    def _equality_keys(self, op: ops.BinaryOp, right: "Table") -> tuple[str, str]:
        if op.op != "==" or not (
            isinstance(op.left, ops.Field) and isinstance(op.right, ops.Field)
        ):
            raise ExpressionError(
                f"Only equality between columns is supported as join predicate, got {op}"
            )
        lf, rf = op.left, op.right
        if lf.table is right.op and rf.table is self.op and lf.table is not rf.table:
            lf, rf = rf, lf
        if lf.table is not self.op and lf.field_name not in self.columns:
            raise ExpressionError(f"Column {lf.field_name!r} does not belong to the left table")
        if rf.table is not right.op and rf.field_name not in right.columns:
            raise ExpressionError(f"Column {rf.field_name!r} does not belong to the right table")
        return lf.field_name, rf.field_name

    def join(self, right: "Table", predicates: Any = (), how: str = "inner") -> "Table":
        """Join with another table.

        Predicates can be:

        * the name of a column that exists in both tables,
        * a ``(left_column, right_column)`` tuple,
        * an equality expression like ``left.id == right.id``,
        * a boolean literal, ``True`` joins each row with every row
          of the other table while ``False`` matches no rows.

        ``how`` can be ``inner``, ``left``, ``right``, ``outer``,
        ``semi``, ``anti`` or ``cross``.
        """
        if how == "cross":
            if predicates is not None and (
                not isinstance(predicates, (list, tuple)) or len(predicates)
            ):
                raise ExpressionError("Cross joins accept no predicates")
            return Table(ops.Join(self.op, right.op, "cross", [], []))
        left_keys, right_keys, condition = self._join_predicates(right, predicates)
        return Table(ops.Join(self.op, right.op, how, left_keys, right_keys, condition))

    def inner_join(self, right: "Table", predicates: Any = ()) -> "Table":
        return self.join(right, predicates, how="inner")

    def left_join(self, right: "Table", predicates: Any = ()) -> "Table":
        return self.join(right, predicates, how="left")

    def right_join(self, right: "Table", predicates: Any = ()) -> "Table":
        return self.join(right, predicates, how="right")

    def outer_join(self, right: "Table", predicates: Any = ()) -> "Table":
        return self.join(right, predicates, how="outer")

    def semi_join(self, right: "Table", predicates: Any = ()) -> "Table":
        return self.join(right, predicates, how="semi")

    def anti_join(self, right: "Table", predicates: Any = ()) -> "Table":
        return self.join(right, predicates, how="anti")

    def cross_join(self, right: "Table") -> "Table":
        return self.join(right, how="cross")

    def _find_backend(self) -> Any:
        backends = ops.find_backends(self.op)
        if len(backends) > 1:
            raise BackendError(
                f"Expression involves multiple backends: {[b.name for b in backends]}"
            )
        elif backends:
            return backends[0]
        return get_default_backend()

    def to_pyarrow(self) -> pa.Table:
        """Run the query and get the result as a :class:`pyarrow.Table`."""
        return self._find_backend().to_pyarrow(self)

    def to_pandas(self) -> pd.DataFrame:
        return self.to_pyarrow().to_pandas()

    def execute(self) -> pd.DataFrame:
        """Run the query and get the result as a :class:`pandas.DataFrame`."""
        return self.to_pandas()

    def to_pylist(self) -> list[dict[str, Any]]:
        return self.to_pyarrow().to_pylist()

    def compile(self, dialect: str | None = None) -> str:
        """Render the query as SQL.

        Uses the dialect of the backend providing the tables,
        unless a different one is requested.
        """
        from ..sql import to_sql

        if dialect is None:
            backends = ops.find_backends(self.op)
            if len(backends) == 1:
                dialect = backends[0].dialect
        return to_sql(self, dialect=dialect)

    def __dataframe__(self, nan_as_null: bool = False, allow_copy: bool = True) -> Any:
        """Expose the result through the dataframe interchange protocol."""
        return self.to_pyarrow().__dataframe__(nan_as_null=nan_as_null, allow_copy=allow_copy)

    def __arrow_c_stream__(self, requested_schema: Any = None) -> Any:
        """Expose the result through the Arrow PyCapsule stream protocol."""
        return self.to_pyarrow().__arrow_c_stream__(requested_schema)


class GroupedTable:
    """A table whose rows are grouped by some keys, waiting for the metrics."""

    def __init__(self, table: Table, groups: dict[str, ops.ValueOp]) -> None:
        self.table = table
        self.groups = groups

    def aggregate(self, *metrics: Any, **named_metrics: Any) -> Table:
        """Compute the metrics for each group."""
        return Table(
            ops.Aggregate(
                self.table.op, self.groups, self.table._bind(metrics, named_metrics)
            )
        )

    agg = aggregate

    def count(self, name: str = "count") -> Table:
        """The number of rows in each group."""
        return self.aggregate(**{name: wrap(ops.CountStar(self.table.op))})
