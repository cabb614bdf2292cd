"""Translate table expressions to compute engine query plans.

The planner walks the tree of operations of an expression
and builds the equivalent tree of :class:`framequery.compute.QueryPlanNode`.

Given an expression like::

    t.filter(t.body_mass_g > 4000).select("species")

The planner would produce::

    ProjectNode(
        project={"species": ColumnRef(species)},
        child=FilterNode(
            pyarrow.compute.greater(ColumnRef(body_mass_g), Literal(4000)),
            child=PyArrowTableDataSource(...)
        )
    )

Values that need the whole table at once, like reductions
used outside of aggregations or row numbers, require all the batches
to be merged first, in such case a :class:`CombineBatchesNode` is added.
"""

import functools
import logging

import pyarrow as pa
import pyarrow.compute as pc

from .. import compute, datatypes
from ..exceptions import BackendError, TypeUnificationError, UnsupportedOperationError
from ..expr import operations as ops

logger = logging.getLogger(__name__)

BINARY_FUNCTIONS = {
    "+": pc.add,
    "-": pc.subtract,
    "*": pc.multiply,
    "/": pc.divide,
    "**": pc.power,
    "==": pc.equal,
    "!=": pc.not_equal,
    ">": pc.greater,
    ">=": pc.greater_equal,
    "<": pc.less,
    "<=": pc.less_equal,
    "and": pc.and_kleene,
    "or": pc.or_kleene,
}

UNARY_FUNCTIONS = {
    "negate": pc.negate,
    "not": pc.invert,
    "isnull": pc.is_null,
    "notnull": pc.is_valid,
    "abs": pc.abs,
}

AGGREGATIONS = {
    "sum": compute.SumAggregation,
    "min": compute.MinAggregation,
    "max": compute.MaxAggregation,
    "mean": compute.MeanAggregation,
    "count": compute.CountAggregation,
    "std": compute.StdDevAggregation,
    "var": compute.VarianceAggregation,
}


class ArrowPlanner:
    """Build compute engine query plans out of table operations.

    Tables of the backend are resolved through its
    ``source_node(name)`` method, which returns the data source
    node that loads the data of the table.
    """

    def __init__(self, backend) -> None:
        self.backend = backend

    def plan(self, op: ops.TableOp) -> compute.QueryPlanNode:
        """Build the query plan for a table operation."""
        method = getattr(self, f"plan_{type(op).__name__}", None)
        if method is None:
            raise UnsupportedOperationError(f"Unable to plan {type(op).__name__}")
        return method(op)

    def execute(self, op: ops.TableOp) -> pa.Table:
        """Run the query plan of the operation and return its result.

        The resulting columns are converted to the types
        declared by the schema of the operation.
        """
        node = self.plan(op)
        logger.debug("Query plan: %s", node)

        schema = op.schema
        batches = []
        for batch in node.batches():
            columns = [
                column if column.type.equals(field.type) else pc.cast(column, field.type)
                for column, field in zip(batch.columns, schema)
            ]
            batches.append(pa.record_batch(columns, schema=schema))
        return pa.Table.from_batches(batches, schema=schema)

    def plan_InMemoryTable(self, op: ops.InMemoryTable) -> compute.QueryPlanNode:
        return compute.PyArrowTableDataSource(op.data)

    def plan_DatabaseTable(self, op: ops.DatabaseTable) -> compute.QueryPlanNode:
        if op.source is not self.backend:
            raise BackendError(f"Table {op.name!r} belongs to a different backend")
        return self.backend.source_node(op.name)

    def _child(self, parent: ops.TableOp, values: list[ops.ValueOp]) -> compute.QueryPlanNode:
        child = self.plan(parent)
        if any(ops.is_analytic(value) for value in values):
            child = compute.CombineBatchesNode(child)
        return child

    def plan_Project(self, op: ops.Project) -> compute.QueryPlanNode:
        child = self._child(op.parent, list(op.values.values()))
        return compute.ProjectNode(
            [], {name: self.compile(value) for name, value in op.values.items()}, child
        )

    def plan_Filter(self, op: ops.Filter) -> compute.QueryPlanNode:
        child = self._child(op.parent, op.predicates)
        predicate = functools.reduce(
            lambda a, b: compute.FunctionCallExpression(pc.and_kleene, a, b),
            (self.compile(p) for p in op.predicates),
        )
        return compute.FilterNode(predicate, child)

    def plan_Aggregate(self, op: ops.Aggregate) -> compute.QueryPlanNode:
        # Compute the grouping keys and the arguments of
        # the reductions as columns, then aggregate them.
        arguments = {name: self.compile(value) for name, value in op.groups.items()}
        aggregations = {}
        for idx, (name, metric) in enumerate(op.metrics.items()):
            if isinstance(metric, ops.CountStar):
                aggregations[name] = compute.CountAllAggregation()
                continue
            column = f"__arg_{idx}"
            arguments[column] = self.compile(metric.arg)
            if metric.how in ("std", "var"):
                aggregations[name] = AGGREGATIONS[metric.how](column, ddof=metric.ddof)
            else:
                aggregations[name] = AGGREGATIONS[metric.how](column)

        reduced = [m.arg for m in op.metrics.values() if isinstance(m, ops.Reduction)]
        child = self._child(op.parent, [*op.groups.values(), *reduced])
        if arguments:
            child = compute.ProjectNode([], arguments, child)
        return compute.AggregateNode(list(op.groups), aggregations, child)

    def plan_Sort(self, op: ops.Sort) -> compute.QueryPlanNode:
        if all(isinstance(key.arg, ops.Field) for key in op.keys):
            return compute.SortNode(
                [key.arg.field_name for key in op.keys],
                [key.descending for key in op.keys],
                self.plan(op.parent),
            )

        # Sorting by expressions requires computing them as
        # temporary columns that are removed after sorting.
        child = self._child(op.parent, [key.arg for key in op.keys])
        sort_columns = {f"__sort_{idx}": self.compile(key.arg) for idx, key in enumerate(op.keys)}
        child = compute.ProjectNode(None, sort_columns, child)
        child = compute.SortNode(list(sort_columns), [key.descending for key in op.keys], child)
        return compute.ProjectNode(list(op.schema.names), None, child)

    def plan_Limit(self, op: ops.Limit) -> compute.QueryPlanNode:
        return compute.PaginateNode(op.offset, op.n, self.plan(op.parent))

    def plan_Join(self, op: ops.Join) -> compute.QueryPlanNode:
        return compute.JoinNode(
            op.left_keys,
            op.right_keys,
            self.plan(op.left),
            self.plan(op.right),
            how=op.how,
            condition=op.condition,
            left_schema=op.left.schema,
            right_schema=op.right.schema,
        )

    def compile(self, op: ops.ValueOp) -> compute.Expression:
        """Build the compute engine expression for a value operation."""
        method = getattr(self, f"compile_{type(op).__name__}", None)
        if method is None:
            raise UnsupportedOperationError(f"Unable to compile {type(op).__name__}")
        return method(op)

    def _coerced(self, op: ops.ValueOp, target: pa.DataType) -> compute.Expression:
        expr = self.compile(op)
        if not op.dtype.equals(target):
            expr = compute.CastExpression(expr, target)
        return expr

    def compile_Field(self, op: ops.Field) -> compute.Expression:
        return compute.ColumnRef(op.field_name)

    def compile_Literal(self, op: ops.Literal) -> compute.Expression:
        return compute.Literal(op.value, op.dtype)

    def compile_BinaryOp(self, op: ops.BinaryOp) -> compute.Expression:
        if op.op in ("/", "**"):
            # Always produce floating point values, even for integers.
            target = pa.float64()
        elif op.op in op.ARITHMETIC:
            target = op.dtype
        else:
            try:
                target = datatypes.unify([op.left.dtype, op.right.dtype])
            except TypeUnificationError:
                target = None

        if target is None or pa.types.is_null(target):
            left, right = self.compile(op.left), self.compile(op.right)
        else:
            left, right = self._coerced(op.left, target), self._coerced(op.right, target)
        return compute.FunctionCallExpression(BINARY_FUNCTIONS[op.op], left, right)

    def compile_UnaryOp(self, op: ops.UnaryOp) -> compute.Expression:
        return compute.FunctionCallExpression(UNARY_FUNCTIONS[op.op], self.compile(op.arg))

    def compile_Cast(self, op: ops.Cast) -> compute.Expression:
        return compute.CastExpression(self.compile(op.arg), op.dtype)

    def compile_Reduction(self, op: ops.Reduction) -> compute.Expression:
        return compute.ReductionExpression(op.how, self.compile(op.arg), ddof=op.ddof)

    def compile_CountStar(self, op: ops.CountStar) -> compute.Expression:
        return compute.FunctionCallExpression(
            functools.partial(pc.count, mode="all"), compute.RowNumberExpression()
        )

    def compile_RowNumber(self, op: ops.RowNumber) -> compute.Expression:
        return compute.RowNumberExpression()

    def compile_ArrayValue(self, op: ops.ArrayValue) -> compute.Expression:
        return compute.MakeArrayExpression(
            *(self.compile(e) for e in op.elements), type=op.dtype.value_type
        )

    def compile_ArrayConcat(self, op: ops.ArrayConcat) -> compute.Expression:
        return compute.ArrayConcatExpression(*(self.compile(a) for a in op.args), type=op.dtype)

    def compile_ArrayRepeat(self, op: ops.ArrayRepeat) -> compute.Expression:
        return compute.ArrayRepeatExpression(self.compile(op.arg), op.times)

    def compile_ArrayLength(self, op: ops.ArrayLength) -> compute.Expression:
        return compute.ArrayLengthExpression(self.compile(op.arg))

    def compile_UrlExtract(self, op: ops.UrlExtract) -> compute.Expression:
        return compute.UrlExtractExpression(op.part, self.compile(op.arg), key=op.key)

    def compile_ScalarUDF(self, op: ops.ScalarUDF) -> compute.Expression:
        return compute.UDFExpression(
            op.func,
            *(self.compile(a) for a in op.args),
            type=op.dtype,
            vectorized=op.vectorized,
        )
