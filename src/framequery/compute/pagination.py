"""Slicing of the rows emitted by a query plan.

Used by :meth:`framequery.Table.limit` and :meth:`framequery.Table.head`.
"""

from .base import QueryPlanNode


class PaginateNode(QueryPlanNode):
    """Skip ``offset`` rows, then emit at most ``length`` rows.

    ``length=None`` emits everything that follows the offset.
    Once the page is complete the child is not consumed
    anymore, so that reading the first rows of a big
    file doesn't require reading the whole file::

        rows:    0  1  2  3  4  5
        offset=2, length=3
        emitted:       2  3  4
    """

    def __init__(self, offset: int, length: int | None, child: QueryPlanNode) -> None:
        """
        :param offset: How many rows to skip.
        :param length: How many rows to emit, ``None`` for no limit.
        :param child: The node providing the rows.
        """
        if offset < 0:
            raise ValueError(f"Offset must not be negative, got {offset}")
        if length is not None and length < 0:
            raise ValueError(f"Length must not be negative, got {length}")
        self.offset = offset
        self.length = length
        self.end = None if length is None else offset + length
        self.child = child

    def __str__(self) -> str:
        end = "" if self.end is None else self.end
        return f"PaginateNode({self.offset}:{end}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the slice of each batch that falls within the page."""
        if self.length == 0:
            return

        position = 0  # Index of the first row of the current batch
        source = self.child.batches()
        for batch in source:
            batch_end = position + batch.num_rows
            start = max(self.offset, position)
            stop = batch_end if self.end is None else min(self.end, batch_end)
            if stop > start:
                yield batch.slice(start - position, stop - start)
            position = batch_end
            if self.end is not None and position >= self.end:
                # Let the child release its resources.
                source.close()
                break
