"""The FrameQuery Compute Engine

Table expressions are lazy: nothing is computed until a
result is requested. At that point a backend translates the
expression into a query plan (see :mod:`framequery.backends.planner`)
made of the nodes of this package, and iterates it.

Plans are pull based: the root node asks its child for
:class:`pyarrow.RecordBatch` objects, that asks its own child
and so on down to a data source::

    CSVDataSource --(batch)--> FilterNode --(batch)--> ProjectNode --> result

Each node knows how to execute itself, so reading a node is
enough to know what happens to the data going through it.

Plans can also be built by hand, which is convenient
to experiment with the engine:

>>> import pyarrow as pa
>>> import pyarrow.compute as pc
>>> from framequery.compute import col, lit, FilterNode, FunctionCallExpression, PyArrowTableDataSource
>>> penguins = pa.table({
...    "species": ["Adelie", "Gentoo", "Chinstrap", "Gentoo"],
...    "body_mass_g": [3750, 5000, 3500, 4700],
... })
>>> heavy = FilterNode(
...     FunctionCallExpression(pc.greater_equal, col("body_mass_g"), lit(4000)),
...     child=PyArrowTableDataSource(penguins),
... )
>>> for batch in heavy.batches():
...     print(batch.to_pydict())
{'species': ['Gentoo', 'Gentoo'], 'body_mass_g': [5000, 4700]}
"""

from .aggregate import (
    AggregateNode,
    CountAggregation,
    CountAllAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    StdDevAggregation,
    SumAggregation,
    VarianceAggregation,
)
from .arrays import (
    ArrayConcatExpression,
    ArrayLengthExpression,
    ArrayRepeatExpression,
    MakeArrayExpression,
)
from .base import ColumnRef, Expression, Literal, QueryPlanNode, col, lit
from .combine import CombineBatchesNode
from .datasources import (
    CSVDataSource,
    DataSourceNode,
    ParquetDataSource,
    PyArrowTableDataSource,
)
from .expressions import (
    CastExpression,
    FunctionCallExpression,
    ReductionExpression,
    RowNumberExpression,
    UDFExpression,
)
from .filtering import FilterNode
from .join import JoinNode
from .pagination import PaginateNode
from .selection import ProjectNode
from .sorting import SortNode
from .urls import UrlExtractExpression

__all__ = (
    "QueryPlanNode",
    "Expression",
    "DataSourceNode",
    "CSVDataSource",
    "ParquetDataSource",
    "PyArrowTableDataSource",
    "FilterNode",
    "FunctionCallExpression",
    "CastExpression",
    "ReductionExpression",
    "RowNumberExpression",
    "UDFExpression",
    "MakeArrayExpression",
    "ArrayConcatExpression",
    "ArrayRepeatExpression",
    "ArrayLengthExpression",
    "UrlExtractExpression",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "PaginateNode",
    "SortNode",
    "ProjectNode",
    "CombineBatchesNode",
    "JoinNode",
    "AggregateNode",
    "CountAggregation",
    "CountAllAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MinAggregation",
    "StdDevAggregation",
    "SumAggregation",
    "VarianceAggregation",
)
