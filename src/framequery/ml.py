"""Machine learning helpers working on tables."""

from typing import Any

import numpy as np
import pyarrow as pa

from .expr.api import memtable
from .expr.table import Table
from .selectors import numeric

__all__ = ("pca",)


def pca(
    table: Table,
    columns: Any = None,
    n_components: int = 2,
    names: str = "pc{}",
) -> Table:
    """Principal Component Analysis of the numeric columns of a table.

    The data is centered on the mean of each column and
    decomposed through a singular value decomposition, the rows
    are then projected on the first ``n_components`` components.

    The resulting table has one column for each component,
    named after ``names`` (``pc1``, ``pc2``, ...), and a ``row_number``
    column with the position of the row in the original table,
    starting from 0. So the result can be joined back to the data::

        t = t.mutate(row_number=fq.row_number())
        t.join(pca(t.drop("row_number")), "row_number")

    :param table: The table to analyze.
    :param columns: The columns to use, all the numeric columns by default.
    :param n_components: How many components to compute.
    :param names: Format string for the names of the components.
    """
    if columns is None:
        columns = numeric()
    data = table.select(columns).to_pyarrow()

    if n_components < 1 or n_components > data.num_columns:
        raise ValueError(
            f"n_components must be between 1 and the number of columns ({data.num_columns})"
        )
    if n_components > data.num_rows:
        raise ValueError(f"Unable to compute {n_components} components out of {data.num_rows} rows")
    for name, column in zip(data.column_names, data.columns):
        if column.null_count:
            raise ValueError(f"Column {name!r} contains null values, drop them first")

    matrix = np.column_stack(
        [column.to_numpy().astype(np.float64) for column in data.columns]
    )
    centered = matrix - matrix.mean(axis=0)
    _, _, components = np.linalg.svd(centered, full_matrices=False)
    projected = centered @ components[:n_components].T

    result = {names.format(idx + 1): projected[:, idx] for idx in range(n_components)}
    result["row_number"] = np.arange(data.num_rows, dtype=np.int64)
    return memtable(pa.table(result))
