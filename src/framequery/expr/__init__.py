"""Lazy table expressions.

Tables and their columns are wrappers around a tree of
operations (see :mod:`framequery.expr.operations`) which
describes the query to run. Backends translate the operations
to compute engine query plans to execute them, while
:mod:`framequery.sql` renders them as SQL.
"""

from .api import array, asc, desc, literal, memtable, row_number
from .table import GroupedTable, Table
from .values import Column, Scalar, Value

__all__ = (
    "Table",
    "GroupedTable",
    "Column",
    "Scalar",
    "Value",
    "memtable",
    "literal",
    "array",
    "row_number",
    "asc",
    "desc",
)
