"""Render table expressions as SQL.

Each table operation becomes a ``SELECT`` statement that reads
from the statement of its parent, so an expression like::

    t.filter(t.year > 2008).group_by("species").aggregate(n=t.count())

is rendered as::

    SELECT
      t0."species",
      COUNT(*) AS "n"
    FROM (
      SELECT
        t1."species",
        ...
      FROM "penguins" AS t1
      WHERE
        (t1."year" > 2008)
    ) AS t0
    GROUP BY
      t0."species"

Reductions are rendered depending on where they are used:
as aggregate functions in aggregations, as ``OVER ()`` window
functions in projections and as scalar subqueries in filters.
"""

import datetime
import decimal
import itertools
import textwrap
from typing import Any, Callable, NamedTuple

import pyarrow as pa

from ..config import options
from ..exceptions import UnsupportedOperationError
from ..expr import operations as ops
from .dialects import Dialect, get_dialect

PROJECTION = "projection"
FILTER = "filter"
AGGREGATION = "aggregation"

BINARY_OPERATORS = {
    "+": "+",
    "-": "-",
    "*": "*",
    "/": "/",
    "==": "=",
    "!=": "<>",
    ">": ">",
    ">=": ">=",
    "<": "<",
    "<=": "<=",
    "and": "AND",
    "or": "OR",
}

JOIN_KEYWORDS = {
    "inner": "INNER JOIN",
    "left": "LEFT OUTER JOIN",
    "right": "RIGHT OUTER JOIN",
    "outer": "FULL OUTER JOIN",
}


class Scope(NamedTuple):
    """Where a value is rendered.

    ``alias`` is the alias of the relation columns are read from,
    ``table`` the operation that relation reads and ``context``
    changes how reductions are rendered.
    """

    alias: str
    table: ops.TableOp
    context: str


class SQLString(str):
    """The SQL rendering of an expression.

    It's a plain string, that notebooks display
    as a highlighted block of SQL code.
    """

    def _repr_markdown_(self) -> str:
        return f"```sql\n{self}\n```"


def to_sql(expr: Any, dialect: str | None = None) -> SQLString:
    """Render an expression as a SQL ``SELECT`` statement.

    Columns and scalars are rendered as the selection
    of the value from the table they come from.

    :param expr: The table, column or scalar to render.
    :param dialect: The SQL dialect to use, defaults to ``options.sql.dialect``.
    """
    if hasattr(expr, "as_table"):
        expr = expr.as_table()
    compiler = SQLCompiler(get_dialect(dialect or options.sql.dialect))
    return SQLString(compiler.compile(expr.op))


def _indent(sql: str) -> str:
    return textwrap.indent(sql, "  ")


class SQLCompiler:
    """Translate the operations of an expression to SQL."""

    def __init__(self, dialect: Dialect) -> None:
        self.dialect = dialect
        self._aliases = (f"t{n}" for n in itertools.count())

    def compile(self, op: ops.TableOp) -> str:
        """Build the ``SELECT`` statement of a table operation."""
        method = getattr(self, f"compile_{type(op).__name__}", None)
        if method is None:
            raise UnsupportedOperationError(f"Unable to render {type(op).__name__} as SQL")
        return method(op)

    def relation(self, op: ops.TableOp) -> tuple[str, str]:
        """The ``FROM`` clause reading a table operation and its alias."""
        alias = next(self._aliases)
        if isinstance(op, (ops.DatabaseTable, ops.InMemoryTable)):
            return f"{self.dialect.quote(op.name)} AS {alias}", alias
        return f"(\n{_indent(self.compile(op))}\n) AS {alias}", alias

    def _select(self, columns: list[str], source: str, *clauses: str) -> str:
        lines = ["SELECT", _indent(",\n".join(columns)), f"FROM {source}"]
        lines.extend(clause for clause in clauses if clause)
        return "\n".join(lines)

    def _columns(self, op: ops.TableOp, alias: str) -> list[str]:
        return [f"{alias}.{self.dialect.quote(name)}" for name in op.schema.names]

    def _named(self, sql: str, name: str, default: str) -> str:
        if sql == default:
            return sql
        return f"{sql} AS {self.dialect.quote(name)}"

    def compile_DatabaseTable(self, op: ops.DatabaseTable) -> str:
        source, alias = self.relation(op)
        return self._select(self._columns(op, alias), source)

    compile_InMemoryTable = compile_DatabaseTable

    def compile_Project(self, op: ops.Project) -> str:
        source, alias = self.relation(op.parent)
        columns = []
        for name, value in op.values.items():
            sql = self.value(value, Scope(alias, op.parent, PROJECTION))
            columns.append(self._named(sql, name, f"{alias}.{self.dialect.quote(name)}"))
        return self._select(columns, source)

    def compile_Filter(self, op: ops.Filter) -> str:
        source, alias = self.relation(op.parent)
        predicates = [self.value(p, Scope(alias, op.parent, FILTER)) for p in op.predicates]
        where = "WHERE\n" + _indent("\nAND ".join(predicates))
        return self._select(self._columns(op, alias), source, where)

    def compile_Aggregate(self, op: ops.Aggregate) -> str:
        source, alias = self.relation(op.parent)
        scope = Scope(alias, op.parent, AGGREGATION)
        groups = {name: self.value(value, scope) for name, value in op.groups.items()}
        columns = [
            self._named(sql, name, f"{alias}.{self.dialect.quote(name)}")
            for name, sql in groups.items()
        ]
        for name, metric in op.metrics.items():
            columns.append(self._named(self.value(metric, scope), name, ""))
        group_by = ""
        if groups:
            group_by = "GROUP BY\n" + _indent(",\n".join(groups.values()))
        return self._select(columns, source, group_by)

    def compile_Sort(self, op: ops.Sort) -> str:
        source, alias = self.relation(op.parent)
        keys = [
            f"{self.value(key.arg, Scope(alias, op.parent, PROJECTION))} "
            f"{'DESC' if key.descending else 'ASC'} NULLS LAST"
            for key in op.keys
        ]
        order_by = "ORDER BY\n" + _indent(",\n".join(keys))
        return self._select(self._columns(op, alias), source, order_by)

    def compile_Limit(self, op: ops.Limit) -> str:
        source, alias = self.relation(op.parent)
        clauses = self.dialect.limit(op.n, op.offset)
        return self._select(self._columns(op, alias), source, *clauses)

    def compile_Join(self, op: ops.Join) -> str:
        left, left_alias = self.relation(op.left)
        right, right_alias = self.relation(op.right)
        if op.condition is not None:
            conditions = [self.dialect.boolean(op.condition)]
            if self.dialect.boolean(True) == "1":
                conditions = ["1 = 1" if op.condition else "1 = 0"]
        else:
            conditions = [
                f"{left_alias}.{self.dialect.quote(lk)} = {right_alias}.{self.dialect.quote(rk)}"
                for lk, rk in zip(op.left_keys, op.right_keys)
            ]
        on = " AND ".join(conditions)

        if op.how in ("semi", "anti"):
            exists = "EXISTS" if op.how == "semi" else "NOT EXISTS"
            subquery = f"SELECT 1\nFROM {right}\nWHERE\n{_indent(on)}"
            where = f"WHERE\n  {exists} (\n{_indent(_indent(subquery))}\n  )"
            return self._select(self._columns(op, left_alias), left, where)

        aliases = {"left": left_alias, "right": right_alias}
        columns = []
        for side, source, output in op.output:
            sql = f"{aliases[side]}.{self.dialect.quote(source)}"
            columns.append(sql if source == output else f"{sql} AS {self.dialect.quote(output)}")

        if op.how == "cross":
            source = f"{left}\nCROSS JOIN {right}"
        else:
            source = f"{left}\n{JOIN_KEYWORDS[op.how]} {right}\n  ON {on}"
        return self._select(columns, source)

    def value(self, op: ops.ValueOp, scope: Scope) -> str:
        """Render a value operation in the given scope."""
        method = getattr(self, f"value_{type(op).__name__}", None)
        if method is None:
            raise UnsupportedOperationError(f"Unable to render {type(op).__name__} as SQL")
        return method(op, scope)

    def value_Field(self, op: ops.Field, scope: Scope) -> str:
        return f"{scope.alias}.{self.dialect.quote(op.field_name)}"

    def literal(self, value: Any, dtype: pa.DataType) -> str:
        d = self.dialect
        if value is None:
            return "NULL"
        elif isinstance(value, bool):
            return d.boolean(value)
        elif isinstance(value, (int, float, decimal.Decimal)):
            return repr(value) if not isinstance(value, decimal.Decimal) else str(value)
        elif isinstance(value, str):
            return d.string(value)
        elif isinstance(value, bytes):
            return f"X'{value.hex()}'"
        elif isinstance(value, datetime.datetime):
            return f"CAST({d.string(value.isoformat(sep=' '))} AS {d.type_name(dtype)})"
        elif isinstance(value, datetime.date):
            return f"CAST({d.string(value.isoformat())} AS {d.type_name(dtype)})"
        elif isinstance(value, (list, tuple)):
            return d.array([self.literal(v, dtype.value_type) for v in value])
        raise UnsupportedOperationError(f"Unable to render literal {value!r} as SQL")

    def value_Literal(self, op: ops.Literal, scope: Scope) -> str:
        return self.literal(op.value, op.dtype)

    def value_BinaryOp(self, op: ops.BinaryOp, scope: Scope) -> str:
        left = self.value(op.left, scope)
        right = self.value(op.right, scope)
        if op.op == "**":
            return self.dialect.power(left, right)
        if op.op == "/":
            left = f"CAST({left} AS {self.dialect.type_name(op.dtype)})"
        return f"({left} {BINARY_OPERATORS[op.op]} {right})"

    def value_UnaryOp(self, op: ops.UnaryOp, scope: Scope) -> str:
        arg = self.value(op.arg, scope)
        if op.op == "negate":
            return f"-({arg})"
        elif op.op == "not":
            return f"NOT {arg}"
        elif op.op == "isnull":
            return f"{arg} IS NULL"
        elif op.op == "notnull":
            return f"{arg} IS NOT NULL"
        return f"ABS({arg})"

    def value_Cast(self, op: ops.Cast, scope: Scope) -> str:
        arg = self.value(op.arg, scope)
        return f"CAST({arg} AS {self.dialect.type_name(op.dtype)})"

    def _reduction(self, sql_for: Callable[[Scope], str], scope: Scope) -> str:
        if scope.context == AGGREGATION:
            return sql_for(scope)
        elif scope.context == PROJECTION:
            return f"{sql_for(scope._replace(context=AGGREGATION))} OVER ()"
        # In filters the reduction is computed by a subquery on the same data.
        source, alias = self.relation(scope.table)
        select = sql_for(Scope(alias, scope.table, AGGREGATION))
        return f"(\n  SELECT {select}\n{_indent(f'FROM {source}')}\n)"

    def value_Reduction(self, op: ops.Reduction, scope: Scope) -> str:
        return self._reduction(
            lambda s: self.dialect.reduction(op.how, self.value(op.arg, s), op.ddof), scope
        )

    def value_CountStar(self, op: ops.CountStar, scope: Scope) -> str:
        return self._reduction(lambda s: "COUNT(*)", scope)

    def value_RowNumber(self, op: ops.RowNumber, scope: Scope) -> str:
        return "(ROW_NUMBER() OVER () - 1)"

    def value_ArrayValue(self, op: ops.ArrayValue, scope: Scope) -> str:
        return self.dialect.array([self.value(e, scope) for e in op.elements])

    def value_ArrayConcat(self, op: ops.ArrayConcat, scope: Scope) -> str:
        args = [self.value(a, scope) for a in op.args]
        result = args[0]
        for arg in args[1:]:
            result = self.dialect.array_concat(result, arg)
        return result

    def value_ArrayRepeat(self, op: ops.ArrayRepeat, scope: Scope) -> str:
        arg = self.value(op.arg, scope)
        if op.times <= 0:
            return f"CAST({self.dialect.array([])} AS {self.dialect.type_name(op.dtype)})"
        result = arg
        for _ in range(op.times - 1):
            result = self.dialect.array_concat(result, arg)
        return result

    def value_ArrayLength(self, op: ops.ArrayLength, scope: Scope) -> str:
        return self.dialect.array_length(self.value(op.arg, scope))

    def value_UrlExtract(self, op: ops.UrlExtract, scope: Scope) -> str:
        return self.dialect.url_extract(op.part, self.value(op.arg, scope), op.key)

    def value_ScalarUDF(self, op: ops.ScalarUDF, scope: Scope) -> str:
        args = [self.value(a, scope) for a in op.args]
        return f"{self.dialect.quote(op.func_name)}({', '.join(args)})"
