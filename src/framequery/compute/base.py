"""Interfaces of the compute engine.

A query plan is a tree of :class:`QueryPlanNode`, where
each node pulls :class:`pyarrow.RecordBatch` objects from
its children, transforms them and yields the result.
Nodes compute new columns through :class:`Expression` objects.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa


class QueryPlanNode(abc.ABC):
    """A step of a query plan.

    Data sources are the leaves of the plan, every other
    node has one child (or two, for joins) and is in charge
    of pulling data from it. The plan runs by iterating
    the batches of the root node::

        plan = FilterNode(heavy, CSVDataSource("penguins.csv"))
        for batch in plan.batches():
            ...

    Implementing a node only requires :meth:`batches`
    and ``__str__``, for example a node that logs
    how many rows flow through it::

        class CountRowsNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for batch in self.child.batches():
                    logger.debug("%d rows", batch.num_rows)
                    yield batch

            def __str__(self):
                return f"CountRowsNode({self.child})"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Iterate over the result of this step.

        Nodes are expected to be lazy, pulling
        data from their children only while the
        consumer asks for more batches.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """The plan starting from this node, for debugging."""
        ...


class Expression(abc.ABC):
    """Computes a value out of the columns of a batch.

    Like ``body_mass_g / 1000`` computing a new column, or
    ``mean(body_mass_g)`` computing a single value.
    Column results are :class:`pyarrow.Array` objects,
    single values are :class:`pyarrow.Scalar` objects and
    are broadcast by the nodes that need a full column.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Evaluate the expression on a batch."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        ...

    def __repr__(self) -> str:
        return str(self)


class ColumnRef(Expression):
    """The values of one of the columns of the batch."""

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        if self.name not in batch.schema.names:
            raise KeyError(f"Column {self.name!r} does not exist")
        return batch.column(self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant, the same :class:`pyarrow.Scalar` for every batch."""

    def __init__(self, value: Any, type: pa.DataType | None = None) -> None:
        """
        :param value: A Python value or a :class:`pyarrow.Scalar`.
        :param type: The type of the value, inferred when omitted.
        """
        if isinstance(value, pa.Scalar):
            self.value = value if type is None else value.cast(type)
        else:
            self.value = pa.scalar(value, type=type)

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        return self.value

    def __str__(self) -> str:
        return f"Literal({self.value!r})"


col = ColumnRef
lit = Literal
