"""Backend storing tables as files in a directory.

Each ``<name>.parquet`` or ``<name>.csv`` file in the directory
is a table named ``<name>``. New tables are written as Parquet,
unless ``format="csv"`` is requested::

    con = fq.connect("file:///data/penguins")
    con.create_table("adelie", penguins.filter(penguins.species == "Adelie"))

Temporary tables are never written to disk.
"""

import logging
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from .. import compute
from ..exceptions import BackendError, TableNotFoundError
from .base import BaseBackend

logger = logging.getLogger(__name__)

FORMATS = {
    ".parquet": compute.ParquetDataSource,
    ".csv": compute.CSVDataSource,
}


class FileBackend(BaseBackend):
    name = "files"

    def __init__(self, path: str | Path, dialect: str | None = None) -> None:
        """
        :param path: The directory containing the tables,
                     created when it doesn't exist.
        :param dialect: The SQL dialect used to compile expressions.
        """
        super().__init__(dialect=dialect)
        self.path = Path(path)
        if self.path.exists() and not self.path.is_dir():
            raise BackendError(f"{self.path} is not a directory")
        self.path.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.path}>"

    def _files(self) -> dict[str, Path]:
        candidates: dict[str, list[Path]] = {}
        for entry in sorted(self.path.iterdir()):
            if entry.is_file() and entry.suffix in FORMATS:
                candidates.setdefault(entry.stem, []).append(entry)
        # When more formats exist for a table, the first in FORMATS wins.
        preference = list(FORMATS)
        return {
            stem: min(entries, key=lambda entry: preference.index(entry.suffix))
            for stem, entries in candidates.items()
        }

    def _stored_tables(self) -> list[str]:
        return list(self._files())

    def _stored_source(self, name: str) -> compute.DataSourceNode:
        files = self._files()
        if name not in files:
            raise TableNotFoundError(f"Table {name!r} not found in {self.path}")
        return FORMATS[files[name].suffix](str(files[name]))

    def _store(self, name: str, data: pa.Table, format: str = "parquet") -> None:
        if format == "parquet":
            filename = self.path / f"{name}.parquet"
            pa.parquet.write_table(data, filename)
        elif format == "csv":
            filename = self.path / f"{name}.csv"
            pa.csv.write_csv(data, filename)
        else:
            raise ValueError(f"Unsupported format {format!r}, expected 'parquet' or 'csv'")
        logger.debug("Wrote %d rows to %s", data.num_rows, filename)

    def _unstore(self, name: str) -> None:
        for suffix in FORMATS:
            filename = self.path / f"{name}{suffix}"
            if filename.exists():
                filename.unlink()
