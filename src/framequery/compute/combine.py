"""Merge all the data emitted by a node in a single batch.

Most nodes of the compute engine work one batch at the time,
but some expressions need to see all the data at once.
For example normalizing a column requires the mean and standard
deviation of the whole column, not of a single batch.

:class:`CombineBatchesNode` accumulates all the batches of its child
so that the next nodes can work on the whole dataset.
"""

import pyarrow as pa

from .base import QueryPlanNode


class CombineBatchesNode(QueryPlanNode):
    """Emit a single batch with all the rows of the child node.

    >>> import pyarrow as pa
    >>> from framequery.compute import PyArrowTableDataSource
    >>> data = pa.Table.from_batches([pa.record_batch({"a": [1, 2]}), pa.record_batch({"a": [3]})])
    >>> list(CombineBatchesNode(PyArrowTableDataSource(data)).batches())
    [pyarrow.RecordBatch
    a: int64
    ----
    a: [1,2,3]]

    When the child emits no batches, no batch is emitted.
    """

    def __init__(self, child: QueryPlanNode) -> None:
        self.child = child

    def __str__(self) -> str:
        return f"CombineBatchesNode({self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        batches = list(self.child.batches())
        if not batches:
            return
        if len(batches) == 1:
            yield batches[0]
            return
        table = pa.Table.from_batches(batches)
        if table.num_rows == 0:
            yield batches[0]
            return
        yield table.combine_chunks().to_batches()[0]
