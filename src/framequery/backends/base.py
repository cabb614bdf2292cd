"""Base class for backends.

A backend owns a set of named tables and knows how to run
the expressions built on top of them. All the backends share
the same compute engine to run queries, they differ in how they
store their tables.

Tables are either *stored* by the backend, which depends on the
kind of backend, or *registered*: temporary tables and files read
with :meth:`BaseBackend.read_csv` and :meth:`BaseBackend.read_parquet`
that are kept in memory until the backend is disconnected.
"""

import logging
import re
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow as pa

from .. import compute
from ..exceptions import IntegrityError, TableNotFoundError
from ..expr import operations as ops
from ..expr.table import Table
from .planner import ArrowPlanner

logger = logging.getLogger(__name__)


class BaseBackend:
    """Common behaviour of all the backends.

    Subclasses provide the storage of tables by overriding
    :meth:`_stored_tables`, :meth:`_stored_source`, :meth:`_store`
    and :meth:`_unstore`. By default tables are stored in memory.
    """

    name = "base"

    def __init__(self, dialect: str | None = None) -> None:
        """
        :param dialect: The SQL dialect used by :meth:`compile`,
                        ``None`` to use ``options.sql.dialect``.
        """
        self.dialect = dialect
        self._registered: dict[str, compute.DataSourceNode] = {}
        self._temporary: set[str] = set()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"

    def _stored_tables(self) -> list[str]:
        return []

    def _stored_source(self, name: str) -> compute.DataSourceNode:
        raise TableNotFoundError(f"Table {name!r} not found")

    def _store(self, name: str, data: pa.Table, **kwargs: Any) -> None:
        self._registered[name] = compute.PyArrowTableDataSource(data)

    def _unstore(self, name: str) -> None:
        del self._registered[name]

    def list_tables(self, like: str | None = None) -> list[str]:
        """List the names of the tables, optionally matching the ``like`` regex."""
        names = sorted(set(self._registered) | set(self._stored_tables()))
        if like is not None:
            pattern = re.compile(like)
            names = [name for name in names if pattern.search(name)]
        return names

    def source_node(self, name: str) -> compute.DataSourceNode:
        """The compute engine node that loads the data of the table."""
        if name in self._registered:
            return self._registered[name]
        return self._stored_source(name)

    def table(self, name: str) -> Table:
        """Get a table expression for a table of the backend.

        Raises :class:`framequery.exceptions.TableNotFoundError`
        when the table doesn't exist.
        """
        schema = self.source_node(name).poll_schema()
        return Table(ops.DatabaseTable(name, schema, self))

    def _exists(self, name: str) -> bool:
        return name in self._registered or name in self._stored_tables()

    def create_table(
        self,
        name: str,
        obj: Any = None,
        *,
        schema: pa.Schema | None = None,
        overwrite: bool = False,
        temp: bool = False,
        **kwargs: Any,
    ) -> Table:
        """Create a new table.

        :param name: The name of the table.
        :param obj: The data of the table: a table expression,
                    a :class:`pyarrow.Table`, a :class:`pandas.DataFrame`
                    or a dict of columns.
        :param schema: The schema of the table. When no ``obj`` is provided
                       an empty table is created.
        :param overwrite: Replace the table if it already exists.
        :param temp: Create a temporary table, removed when
                     the backend is disconnected.
        """
        if obj is None and schema is None:
            raise ValueError("Either obj or schema must be provided to create a table")

        if self._exists(name):
            if not overwrite:
                raise IntegrityError(
                    f"Table {name!r} already exists, use overwrite=True to replace it"
                )
            # Read the data before dropping the table, it might come from the table itself.
            data = self._to_arrow(obj, schema)
            self.drop_table(name)
        else:
            data = self._to_arrow(obj, schema)

        if temp:
            self._registered[name] = compute.PyArrowTableDataSource(data)
            self._temporary.add(name)
        else:
            self._store(name, data, **kwargs)
        logger.info("Created %stable %s on %s", "temporary " if temp else "", name, self)
        return self.table(name)

    def _to_arrow(self, obj: Any, schema: pa.Schema | None) -> pa.Table:
        if obj is None:
            return schema.empty_table()
        if isinstance(obj, Table):
            data = obj.to_pyarrow()
        elif isinstance(obj, pa.RecordBatch):
            data = pa.Table.from_batches([obj])
        elif isinstance(obj, pd.DataFrame):
            data = pa.Table.from_pandas(obj, preserve_index=False)
        elif isinstance(obj, dict):
            data = pa.table(obj)
        elif isinstance(obj, pa.Table):
            data = obj
        else:
            raise ValueError(f"Unable to create a table from {type(obj).__name__}")
        if schema is not None:
            data = data.cast(schema)
        return data

    def drop_table(self, name: str, force: bool = False) -> None:
        """Remove a table.

        :param force: Do nothing when the table doesn't exist,
                      otherwise :class:`TableNotFoundError` is raised.
        """
        if name in self._registered:
            del self._registered[name]
            self._temporary.discard(name)
        elif name in self._stored_tables():
            self._unstore(name)
        elif not force:
            raise TableNotFoundError(f"Table {name!r} not found")
        else:
            return
        logger.info("Dropped table %s from %s", name, self)

    def _register(
        self, source: compute.DataSourceNode, path: str | Path, table_name: str | None
    ) -> Table:
        if table_name is None:
            table_name = re.sub(r"\W", "_", Path(path).name.split(".")[0])
        self._registered[table_name] = source
        logger.info("Registered %s as table %s", path, table_name)
        return self.table(table_name)

    def read_csv(self, path: str | Path, table_name: str | None = None, **kwargs: Any) -> Table:
        """Register a CSV file as a table.

        The table is named after the file unless ``table_name`` is provided,
        additional arguments are forwarded to :class:`framequery.compute.CSVDataSource`.
        """
        return self._register(compute.CSVDataSource(str(path), **kwargs), path, table_name)

    def read_parquet(
        self, path: str | Path, table_name: str | None = None, **kwargs: Any
    ) -> Table:
        """Register a Parquet file as a table."""
        return self._register(compute.ParquetDataSource(str(path), **kwargs), path, table_name)

    def to_pyarrow(self, expr: Any) -> pa.Table:
        """Run an expression and return the result as a :class:`pyarrow.Table`."""
        if not isinstance(expr, Table):
            expr = expr.as_table()
        return ArrowPlanner(self).execute(expr.op)

    def execute(self, expr: Any) -> pd.DataFrame:
        """Run an expression and return the result as a :class:`pandas.DataFrame`."""
        return self.to_pyarrow(expr).to_pandas()

    def compile(self, expr: Any) -> str:
        """Render an expression as SQL in the dialect of the backend."""
        from ..sql import to_sql

        return to_sql(expr, dialect=self.dialect)

    def disconnect(self) -> None:
        """Release the backend, temporary tables are removed."""
        for name in list(self._temporary):
            self.drop_table(name, force=True)
        logger.debug("Disconnected %s", self)
