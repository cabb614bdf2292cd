"""Backend that keeps all its tables in memory.

Tables are :class:`pyarrow.Table` objects, or files that
are read lazily each time a query needs them::

    >>> import framequery as fq
    >>> con = fq.connect("memory://")
    >>> t = con.create_table("numbers", {"n": [1, 2, 3]})
    >>> con.list_tables()
    ['numbers']
    >>> t.n.sum().execute()
    6

This is the backend used by default to run
expressions that are not bound to any backend.
"""

from typing import Any

import pyarrow as pa

from .base import BaseBackend


class Backend(BaseBackend):
    """In-memory backend, its content is lost when the process exits."""

    name = "memory"

    def __init__(
        self, tables: dict[str, pa.Table] | None = None, dialect: str | None = None
    ) -> None:
        """
        :param tables: Initial tables of the backend as ``{name: data}``.
        :param dialect: The SQL dialect used to compile expressions.
        """
        super().__init__(dialect=dialect)
        for name, data in (tables or {}).items():
            self.create_table(name, data)

    def _store(self, name: str, data: pa.Table, **kwargs: Any) -> None:
        if kwargs:
            raise TypeError(f"Unsupported options for the memory backend: {sorted(kwargs)}")
        super()._store(name, data)
