"""Support for rendering table expressions as SQL.

Expressions built with FrameQuery can be rendered as a SQL ``SELECT``
statement, which is useful to understand what a query does or
to run it on a SQL database::

    >>> import framequery as fq
    >>> t = fq.memtable({"species": ["Adelie"], "body_mass_g": [3750]}, name="penguins")
    >>> print(fq.to_sql(t.filter(t.body_mass_g > 3000).select("species")))
    SELECT
      t0."species"
    FROM (
      SELECT
        t1."species",
        t1."body_mass_g"
      FROM "penguins" AS t1
      WHERE
        (t1."body_mass_g" > 3000)
    ) AS t0

The result is a :class:`SQLString`, a ``str`` subclass
that notebooks display as a highlighted SQL block.

The SQL support is constituted by two components:

1. The :class:`framequery.sql.compiler.SQLCompiler` walks the tree of
   operations of the expression and builds one ``SELECT`` statement for
   each table operation, nesting the statement of the parent as a subquery.
2. The :mod:`framequery.sql.dialects` define how the statements are spelled
   for each database: ``ansi`` (the default), ``duckdb``, ``postgres`` and ``sqlite``.

The default dialect can be changed through ``framequery.options.sql.dialect``
or the ``FRAMEQUERY_SQL_DIALECT`` environment variable.
"""

from .compiler import SQLCompiler, SQLString, to_sql
from .dialects import DIALECTS, Dialect, get_dialect

__all__ = ("to_sql", "SQLString", "SQLCompiler", "Dialect", "DIALECTS", "get_dialect")
