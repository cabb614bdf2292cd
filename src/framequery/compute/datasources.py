"""Leaves of the query plans, providing the data of the tables.

Backends expose each of their tables as one of these nodes,
see :meth:`framequery.backends.BaseBackend.source_node`.
Data sources can report their schema without reading the data,
which is how table expressions know their columns.
"""

from abc import abstractmethod

import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from .base import QueryPlanNode


class DataSourceNode(QueryPlanNode):
    """A node reading data from outside of the query plan."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """The schema of the data, reading as little as possible."""
        ...


class CSVDataSource(DataSourceNode):
    """Stream the content of a CSV file.

    Column types are inferred from the first block of the file,
    unless forced through ``column_types``. ``NA``, ``null`` and
    empty values are read as nulls, for string columns too, as
    it's what datasets like the penguins one use for missing values.
    """

    def __init__(
        self,
        filename: str,
        block_size: int | None = None,
        column_types: dict[str, pa.DataType] | None = None,
    ) -> None:
        """
        :param filename: Path of the file.
        :param block_size: Bytes read for each batch, ``None`` for the pyarrow default.
        :param column_types: Types for some of the columns as ``{name: type}``.
        """
        self.filename = str(filename)
        self.block_size = block_size
        self.column_types = column_types or {}

    def __str__(self) -> str:
        return f"CSVDataSource({self.filename}, block_size={self.block_size})"

    def _reader(self, block_size: int | None = None) -> pa.csv.CSVStreamingReader:
        return pa.csv.open_csv(
            self.filename,
            read_options=pa.csv.ReadOptions(block_size=block_size),
            convert_options=pa.csv.ConvertOptions(
                column_types=self.column_types, strings_can_be_null=True
            ),
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        with self._reader(self.block_size) as reader:
            yield from reader

    def poll_schema(self) -> pa.Schema:
        with self._reader() as reader:
            return reader.schema


class ParquetDataSource(DataSourceNode):
    """Stream the row groups of a Parquet file in batches of ``batch_size`` rows."""

    DEFAULT_BATCH_SIZE = 65536

    def __init__(self, filename: str, batch_size: int | None = None) -> None:
        self.filename = str(filename)
        self.batch_size = batch_size or self.DEFAULT_BATCH_SIZE

    def __str__(self) -> str:
        return f"ParquetDataSource({self.filename}, batch_size={self.batch_size})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        with pa.parquet.ParquetFile(self.filename) as parquet_file:
            yield from parquet_file.iter_batches(batch_size=self.batch_size)

    def poll_schema(self) -> pa.Schema:
        # Only the footer of the file is read.
        with pa.parquet.ParquetFile(self.filename) as parquet_file:
            return parquet_file.schema_arrow


class PyArrowTableDataSource(DataSourceNode):
    """Data already in memory, as a :class:`pyarrow.Table` or :class:`pyarrow.RecordBatch`.

    Used by :func:`framequery.memtable` and by the in-memory backend.
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        self.table = table

    def __str__(self) -> str:
        return (
            f"PyArrowTableDataSource(columns={self.table.column_names}, "
            f"rows={self.table.num_rows})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        if isinstance(self.table, pa.RecordBatch):
            yield self.table
        else:
            yield from self.table.to_batches()

    def poll_schema(self) -> pa.Schema:
        return self.table.schema
