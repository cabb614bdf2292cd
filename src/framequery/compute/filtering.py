"""Selection of rows through a predicate.

This is what :meth:`framequery.Table.filter` relies on
and what the ``WHERE`` clause of SQL does.
"""

import pyarrow as pa

from .base import Expression, QueryPlanNode
from .expressions import broadcast


class FilterNode(QueryPlanNode):
    """Keep the rows for which a boolean expression is true.

    Rows where the predicate evaluates to null are dropped
    too, like SQL does. A literal predicate keeps every row
    or none of them.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from framequery.compute import col, lit, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"body_mass_g": [3750, 5000, None, 4200]})
    >>> heavy = FunctionCallExpression(pc.greater, col("body_mass_g"), lit(4000))
    >>> next(FilterNode(heavy, PyArrowTableDataSource(data)).batches()).column(0).to_pylist()
    [5000, 4200]
    """

    def __init__(self, expression: Expression, child: QueryPlanNode) -> None:
        """
        :param expression: Expression computing ``True`` for the rows to keep.
        :param child: The node providing the rows.
        """
        self.expression = expression
        self.child = child

    def __str__(self) -> str:
        return f"FilterNode(filter={self.expression}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Filter each batch of the child independently."""
        for batch in self.child.batches():
            keep = broadcast(self.expression.apply(batch), batch.num_rows)
            if not pa.types.is_boolean(keep.type):
                raise TypeError(f"Filter predicate must be boolean, got {keep.type}")
            yield batch.filter(keep, null_selection_behavior="drop")
