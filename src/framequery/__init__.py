"""FrameQuery

A lazy dataframe library built on Apache Arrow.

Queries are expressed as table expressions, that are only
executed when their result is requested, by a pull based compute engine
working on :class:`pyarrow.RecordBatch` objects::

    >>> import framequery as fq
    >>> t = fq.memtable({"species": ["Adelie", "Gentoo", "Gentoo"], "body_mass_g": [3750, 5000, 4700]})
    >>> t.filter(t.body_mass_g > 4000).count().execute()
    2

The library is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Compute Engine (:mod:`framequery.compute`), in charge of executing query plans.
* The Expressions API (:mod:`framequery.expr`), to build queries.
* The Backends (:mod:`framequery.backends`), which provide tables and run the queries.
* The SQL renderer (:mod:`framequery.sql`), to translate queries to SQL.

For the user guide and code documentation of each component, refer to the
component itself.
"""

import logging
from pathlib import Path
from typing import Any

from . import compute, examples, ml, selectors, udf
from .backends import connect
from .config import get_default_backend, options
from .expr import (
    Column,
    GroupedTable,
    Scalar,
    Table,
    array,
    asc,
    desc,
    literal,
    memtable,
    row_number,
)
from .sql import SQLString, to_sql

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())


def read_csv(path: str | Path, table_name: str | None = None, **kwargs: Any) -> Table:
    """Read a CSV file as a table of the default backend."""
    return get_default_backend().read_csv(path, table_name=table_name, **kwargs)


def read_parquet(path: str | Path, table_name: str | None = None, **kwargs: Any) -> Table:
    """Read a Parquet file as a table of the default backend."""
    return get_default_backend().read_parquet(path, table_name=table_name, **kwargs)


__all__ = (
    "compute",
    "examples",
    "ml",
    "selectors",
    "udf",
    "options",
    "connect",
    "Table",
    "GroupedTable",
    "Column",
    "Scalar",
    "memtable",
    "literal",
    "array",
    "row_number",
    "asc",
    "desc",
    "read_csv",
    "read_parquet",
    "to_sql",
    "SQLString",
)
