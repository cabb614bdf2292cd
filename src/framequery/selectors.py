"""Select columns by their name or type.

Selectors pick a set of columns of a table without
having to name them one by one, they can be provided to
:meth:`Table.select`, :meth:`Table.mutate`, :meth:`Table.drop`,
:meth:`Table.group_by` and :meth:`Table.drop_null`::

    >>> import framequery as fq
    >>> from framequery import selectors as s
    >>> t = fq.memtable({"species": ["Adelie"], "bill_length_mm": [39.1], "year": [2007]})
    >>> t.select(s.numeric()).columns
    ['bill_length_mm', 'year']

Selectors can be combined with ``&`` (both), ``|`` (any) and ``~`` (not)::

    >>> t.select(s.numeric() & ~s.c("year")).columns
    ['bill_length_mm']

:func:`across` applies one or more functions to the selected columns::

    >>> t.mutate(s.across(s.numeric(), lambda c: c * 2)).columns
    ['species', 'bill_length_mm', 'year']
"""

import re
from typing import Any, Callable

import pyarrow as pa

from . import datatypes
from .exceptions import ExpressionError

__all__ = (
    "Selector",
    "Across",
    "all",
    "numeric",
    "of_type",
    "c",
    "matches",
    "startswith",
    "endswith",
    "where",
    "across",
)


class Selector:
    """Pick the columns of a schema for which a predicate is true."""

    def __init__(self, predicate: Callable[[pa.Field], bool], description: str) -> None:
        self.predicate = predicate
        self.description = description

    def __str__(self) -> str:
        return self.description

    __repr__ = __str__

    def expand(self, table: Any) -> list[str]:
        """The names of the selected columns of the table, in the table order."""
        schema = table.schema()
        return [field.name for field in schema if self.predicate(field)]

    def __and__(self, other: "Selector") -> "Selector":
        return Selector(
            lambda f: self.predicate(f) and other.predicate(f), f"({self} & {other})"
        )

    def __or__(self, other: "Selector") -> "Selector":
        return Selector(
            lambda f: self.predicate(f) or other.predicate(f), f"({self} | {other})"
        )

    def __invert__(self) -> "Selector":
        return Selector(lambda f: not self.predicate(f), f"~{self}")


def all() -> Selector:
    return Selector(lambda f: True, "all()")


def numeric() -> Selector:
    """Columns of integer or floating point type."""
    return Selector(lambda f: datatypes.is_numeric(f.type), "numeric()")


def of_type(type: str | pa.DataType) -> Selector:
    """Columns of the given type, like ``of_type("string")``."""
    expected = datatypes.dtype(type)
    return Selector(lambda f: f.type.equals(expected), f"of_type({expected})")


class _Names(Selector):
    def __init__(self, names: tuple[str, ...]) -> None:
        self.names = names
        super().__init__(lambda f: f.name in names, f"c({', '.join(map(repr, names))})")

    def expand(self, table: Any) -> list[str]:
        # Explicitly named columns must exist.
        missing = [name for name in self.names if name not in table.columns]
        if missing:
            raise ExpressionError(f"Columns not found: {missing}")
        return super().expand(table)


def c(*names: str) -> Selector:
    """Columns with exactly the given names."""
    return _Names(names)


def matches(regex: str) -> Selector:
    """Columns whose name contains a match of the regular expression."""
    pattern = re.compile(regex)
    return Selector(lambda f: pattern.search(f.name) is not None, f"matches({regex!r})")


def startswith(prefix: str | tuple[str, ...]) -> Selector:
    return Selector(lambda f: f.name.startswith(prefix), f"startswith({prefix!r})")


def endswith(suffix: str | tuple[str, ...]) -> Selector:
    return Selector(lambda f: f.name.endswith(suffix), f"endswith({suffix!r})")


def where(predicate: Callable[[Any], bool]) -> Selector:
    """Columns for which ``predicate(column)`` is true.

    The predicate receives the :class:`framequery.expr.values.Column`,
    so it can check its type or name.
    """

    class _Where(Selector):
        def expand(self, table: Any) -> list[str]:
            return [name for name in table.columns if predicate(table[name])]

    return _Where(lambda f: True, f"where({predicate!r})")


class Across:
    """Apply functions to each column picked by a selector.

    The names of the resulting columns are computed from
    ``names``, a format string receiving ``col`` and ``fn``,
    or a callable receiving the column name and the function name.
    """

    def __init__(
        self,
        selector: Selector,
        funcs: Callable | dict[str, Callable],
        names: str | Callable[[str, str], str] | None = None,
    ) -> None:
        if isinstance(selector, str):
            selector = c(selector)
        elif isinstance(selector, (list, tuple)):
            selector = c(*selector)
        self.selector = selector
        if callable(funcs):
            self.funcs = {getattr(funcs, "__name__", "fn"): funcs}
            default_names = "{col}"
        else:
            self.funcs = dict(funcs)
            default_names = "{col}_{fn}"
        self.names = default_names if names is None else names

    def expand(self, table: Any) -> dict[str, Any]:
        """Compute the new columns as ``{name: value}``."""
        result = {}
        for column in self.selector.expand(table):
            for fn_name, func in self.funcs.items():
                if callable(self.names):
                    name = self.names(column, fn_name)
                else:
                    name = self.names.format(col=column, fn=fn_name)
                result[name] = func(table[column])
        return result


def across(
    selector: Selector,
    func: Callable | dict[str, Callable],
    names: str | Callable[[str, str], str] | None = None,
) -> Across:
    """Apply one or more functions to all the selected columns.

    Normalize all numeric columns::

        t.mutate(s.across(s.numeric(), lambda c: (c - c.mean()) / c.std()))

    When a dict of functions is provided, one column
    for each function is computed and named ``{col}_{fn}``::

        t.group_by("species").aggregate(
            s.across(s.numeric(), {"mean": lambda c: c.mean(), "max": lambda c: c.max()})
        )
    """
    return Across(selector, func, names)
