"""Ordering of rows.

Used to implement :meth:`framequery.Table.order_by`.
Sorting needs to see all the rows before emitting
the first one, so it can't be performed batch by batch.
"""

import pyarrow as pa

from .base import QueryPlanNode


class SortNode(QueryPlanNode):
    """Sort all the rows emitted by the child by one or more columns.

    Rows are ordered by the first key, ties are broken by
    the following ones. Nulls come last, for both
    ascending and descending keys.

    >>> import pyarrow as pa
    >>> from framequery.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"body_mass_g": [3750, None, 5000, 3450]})
    >>> heaviest_first = SortNode(["body_mass_g"], [True], PyArrowTableDataSource(data))
    >>> next(heaviest_first.batches()).column(0).to_pylist()
    [5000, 3750, 3450, None]
    """

    def __init__(
        self, keys: list[str], descending: list[bool], child: QueryPlanNode
    ) -> None:
        """
        :param keys: Names of the columns to sort by, most significant first.
        :param descending: For each key, ``True`` to sort it from the biggest value.
        :param child: The node providing the rows to sort.
        """
        if len(keys) != len(descending):
            raise ValueError(
                f"Got {len(keys)} sort keys but {len(descending)} sort directions"
            )
        self.sorting = [
            (key, "descending" if desc else "ascending")
            for key, desc in zip(keys, descending)
        ]
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Load all the rows of the child and emit them sorted."""
        received = list(self.child.batches())
        if not received:
            return

        sort_keys = [(key, order, "at_end") for key, order in self.sorting]
        if len(received) == 1:
            yield received[0].sort_by(sort_keys)
            return

        # Tables are only views over the batches,
        # so merging them doesn't copy the data.
        merged = pa.Table.from_batches(received)
        yield from merged.sort_by(sort_keys).to_batches()
