"""Choosing and computing the columns of the result.

:meth:`framequery.Table.select` and :meth:`framequery.Table.mutate`
are both implemented by a :class:`ProjectNode`, the difference
being whether the existing columns are kept or not.
"""

import pyarrow as pa

from .base import Expression, QueryPlanNode
from .expressions import broadcast


class ProjectNode(QueryPlanNode):
    """Keep some of the columns and compute new ones.

    Computed columns are evaluated against the batch received
    from the child, so they can't refer to each other. A computed
    column named like an existing one takes its place, other computed
    columns are added after the existing ones.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from framequery.compute import col, lit, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"species": ["Adelie", "Gentoo"], "body_mass_g": [3750, 5000]})
    >>> kg = FunctionCallExpression(pc.divide, col("body_mass_g"), lit(1000.0))
    >>> next(ProjectNode(["species"], {"kg": kg}, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'species': ['Adelie', 'Gentoo'], 'kg': [3.75, 5.0]}
    """

    def __init__(
        self,
        select: list[str] | None,
        project: dict[str, Expression] | None,
        child: QueryPlanNode,
    ) -> None:
        """
        :param select: The existing columns to keep, ``None`` to keep all of them,
                       ``[]`` to only keep the computed ones.
        :param project: The columns to compute as ``{name: expression}``.
        :param child: The node providing the rows.
        """
        self.select = select
        self.project = project or {}
        self.child = child

        self.output_columns = None
        if select is not None:
            self.output_columns = list(dict.fromkeys([*select, *self.project]))

    def __str__(self) -> str:
        return f"ProjectNode(select={self.select}, project={self.project}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            if self.project:
                columns = dict(zip(batch.schema.names, batch.columns))
                for name, expression in self.project.items():
                    columns[name] = broadcast(expression.apply(batch), batch.num_rows)
                batch = pa.record_batch(list(columns.values()), names=list(columns))

            if self.output_columns == []:
                batch = pa.RecordBatch.from_arrays([], names=[])
            elif self.output_columns is not None:
                batch = batch.select(self.output_columns)
            yield batch
