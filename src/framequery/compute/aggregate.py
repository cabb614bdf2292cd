"""Grouping of rows and computation of statistics on each group.

This is what :meth:`framequery.GroupedTable.aggregate` and the
``GROUP BY`` clause of SQL rely on. Grouping these penguins::

    species, island, body_mass_g
    Adelie, Torgersen, 3750
    Adelie, Biscoe, 3800
    Gentoo, Biscoe, 5000
    Gentoo, Biscoe, 4700
    Adelie, Dream, 3250

by ``species`` and averaging ``body_mass_g`` gives::

    species, avg_body_mass_g
    Adelie, 3600.0
    Gentoo, 4850.0

Without grouping keys the whole data is a single group,
and a single row is emitted even when there is no data.

Aggregations never need all the rows at once: each batch
is reduced to a partial result (like the sum and count of
its values for a mean) and the partial results of all the
batches are combined at the end.
"""

import abc
import math
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode

__all__ = (
    "AggregateNode",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "CountAggregation",
    "CountAllAggregation",
    "StdDevAggregation",
    "VarianceAggregation",
)

# {group key: {aggregation name: [partial result of each batch]}}
PartialResults = dict[tuple, dict[str, list[Any]]]


class AggregateNode(QueryPlanNode):
    """Compute aggregations for each group of rows.

    The result has one column for each key, followed
    by one column for each aggregation, and one row for each group.

    >>> import pyarrow as pa
    >>> from framequery.compute import MeanAggregation, PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'species': ['Adelie', 'Adelie', 'Gentoo', 'Gentoo', 'Adelie'],
    ...    'island': ['Torgersen', 'Biscoe', 'Biscoe', 'Biscoe', 'Dream'],
    ...    'body_mass_g': [3750, 3800, 5000, 4700, 3250],
    ... })
    >>> aggregate = AggregateNode(["species"], {"avg_body_mass_g": MeanAggregation("body_mass_g")},
    ...                           PyArrowTableDataSource(data))
    >>> next(aggregate.batches()).to_pydict()
    {'species': ['Adelie', 'Gentoo'], 'avg_body_mass_g': [3600.0, 4850.0]}
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, "Aggregation"],
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns identifying the groups, ``[]`` for a single group.
        :param aggregations: The statistics to compute as ``{name: Aggregation}``.
        :param child: The node providing the rows.
        """
        self.keys = keys
        self.aggregations = aggregations
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        if not self.keys:
            partials = self._whole_data()
        elif len(self.keys) == 1:
            partials = self._by_single_key()
        else:
            partials = self._by_multiple_keys()
        yield self.reduce_aggregations(partials)

    def _accumulate(self, partials: PartialResults, key: tuple, rows: pa.RecordBatch) -> None:
        group = partials.setdefault(key, {name: [] for name in self.aggregations})
        for name, aggregation in self.aggregations.items():
            group[name].append(aggregation.compute_chunk(rows))

    def _whole_data(self) -> PartialResults:
        # The group exists even without rows, so that count() gives 0.
        partials: PartialResults = {(): {name: [] for name in self.aggregations}}
        for batch in self.child.batches():
            self._accumulate(partials, (), batch)
        return partials

    def _by_single_key(self) -> PartialResults:
        """Group by one column, in order of first appearance.

        Dictionary encoding the key gives the distinct values
        and, for each row, the index of its value. Null is
        encoded like any other value so it forms its own group.
        """
        partials: PartialResults = {}
        for batch in self.child.batches():
            encoded = pc.dictionary_encode(batch.column(self.keys[0]), null_encoding="encode")
            for index, value in enumerate(encoded.dictionary):
                rows = batch.filter(pc.equal(encoded.indices, index))
                self._accumulate(partials, (value.as_py(),), rows)
        return partials

    def _by_multiple_keys(self) -> PartialResults:
        """Group by more than one column, in order of the keys.

        pyarrow can't dictionary encode multiple columns at once,
        so each batch is sorted by the keys and consecutive
        rows sharing the same keys are taken as a group.
        """
        partials: PartialResults = {}
        order = [(key, "ascending") for key in self.keys]
        for batch in self.child.batches():
            batch = batch.sort_by(order)
            row_keys = list(zip(*(batch.column(key).to_pylist() for key in self.keys)))
            group_start = 0
            for position in range(1, len(row_keys) + 1):
                if position == len(row_keys) or row_keys[position] != row_keys[group_start]:
                    rows = batch.slice(group_start, position - group_start)
                    self._accumulate(partials, row_keys[group_start], rows)
                    group_start = position

        # Groups first seen in later batches are appended, so sort again.
        return dict(sorted(partials.items(), key=lambda item: _sort_key(item[0])))

    def reduce_aggregations(self, partials: PartialResults) -> pa.RecordBatch:
        """Combine the partial results of each group into the output batch.

        For example partial counts of three batches::

            {("Adelie",): {"count": [10, 20, 30]}}

        become::

            {"species": ["Adelie"], "count": [60]}
        """
        columns: dict[str, list[Any]] = {name: [] for name in [*self.keys, *self.aggregations]}
        for key, group in partials.items():
            for name, value in zip(self.keys, key):
                columns[name].append(value)
            for name, aggregation in self.aggregations.items():
                result = aggregation.reduce(group[name])
                if isinstance(result, pa.Scalar):
                    result = result.as_py()
                columns[name].append(result)

        return pa.record_batch(
            [pa.array(values) for values in columns.values()], names=list(columns)
        )


def _sort_key(key: tuple) -> tuple:
    # Nulls go last, like they do when sorting the batches.
    return tuple((value is None, value) for value in key)


class Aggregation(abc.ABC):
    """A statistic computed batch by batch.

    :meth:`compute_chunk` reduces the rows of a group found in
    one batch to a partial result, :meth:`reduce` combines the
    partial results of all the batches. ``reduce`` receives an
    empty list when there are no rows at all.
    """

    def __init__(self, column: str | None) -> None:
        self.column = column

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"

    __repr__ = __str__

    @abc.abstractmethod
    def compute_chunk(self, batch: pa.RecordBatch) -> Any: ...

    @abc.abstractmethod
    def reduce(self, chunks: list[Any]) -> Any: ...


class SimpleAggregation(Aggregation):
    """Statistics where partial results combine like the values themselves.

    ``max(3750, 5000, 3250) == max(max(3750, 5000), 3250)``,
    so the same function computes partial and final results.
    """

    @abc.abstractmethod
    def _aggregate(self, data: Any) -> Any: ...

    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        return self._aggregate(batch.column(self.column))

    def reduce(self, chunks: list[Any]) -> Any:
        partials = [c.as_py() if isinstance(c, pa.Scalar) else c for c in chunks]
        partials = [p for p in partials if p is not None]
        if not partials:
            return None
        return self._aggregate(pa.array(partials))


class SumAggregation(SimpleAggregation):
    def _aggregate(self, data: Any) -> Any:
        return pc.sum(data)


class MinAggregation(SimpleAggregation):
    def _aggregate(self, data: Any) -> Any:
        return pc.min(data)


class MaxAggregation(SimpleAggregation):
    def _aggregate(self, data: Any) -> Any:
        return pc.max(data)


class CountAggregation(Aggregation):
    """The number of non null values of the column."""

    def compute_chunk(self, batch: pa.RecordBatch) -> int:
        return pc.count(batch.column(self.column)).as_py()

    def reduce(self, chunks: list[int]) -> int:
        return sum(chunks)


class CountAllAggregation(Aggregation):
    """The number of rows, nulls included."""

    def __init__(self, column: str | None = None) -> None:
        super().__init__(column)

    def compute_chunk(self, batch: pa.RecordBatch) -> int:
        return batch.num_rows

    def reduce(self, chunks: list[int]) -> int:
        return sum(chunks)


class MeanAggregation(Aggregation):
    """The average of the non null values, always a float.

    Each batch contributes the count and the sum of its values.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> tuple[int, Any]:
        values = batch.column(self.column)
        return (pc.count(values).as_py(), pc.sum(values).as_py())

    def reduce(self, chunks: list[tuple[int, Any]]) -> float | None:
        count = sum(n for n, _ in chunks)
        if count == 0:
            return None
        return float(sum(total for _, total in chunks if total is not None)) / count


class VarianceAggregation(Aggregation):
    """The variance of the non null values.

    Each batch contributes the count, the mean and the sum of
    squared differences from the mean (``m2``) of its values.
    Partial results are merged pairwise (Chan et al.)::

        delta = mean_b - mean_a
        m2 = m2_a + m2_b + delta^2 * n_a * n_b / (n_a + n_b)

    which stays accurate when the values are far from zero.
    ``ddof=1`` gives the sample variance, ``ddof=0`` the population one.
    """

    def __init__(self, column: str, ddof: int = 1) -> None:
        super().__init__(column)
        self.ddof = ddof

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column}, ddof={self.ddof})"

    __repr__ = __str__

    def compute_chunk(self, batch: pa.RecordBatch) -> tuple[int, float, float]:
        values = pc.cast(batch.column(self.column), pa.float64())
        count = pc.count(values).as_py()
        if count == 0:
            return (0, 0.0, 0.0)
        mean = pc.mean(values).as_py()
        deviations = pc.subtract(values, mean)
        return (count, mean, pc.sum(pc.multiply(deviations, deviations)).as_py())

    def reduce(self, chunks: list[tuple[int, float, float]]) -> float | None:
        count, mean, m2 = 0, 0.0, 0.0
        for chunk_count, chunk_mean, chunk_m2 in chunks:
            if chunk_count == 0:
                continue
            total = count + chunk_count
            delta = chunk_mean - mean
            mean += delta * chunk_count / total
            m2 += chunk_m2 + delta * delta * count * chunk_count / total
            count = total
        if count - self.ddof <= 0:
            return None
        return m2 / (count - self.ddof)


class StdDevAggregation(VarianceAggregation):
    """The standard deviation, square root of the variance."""

    def reduce(self, chunks: list[tuple[int, float, float]]) -> float | None:
        variance = super().reduce(chunks)
        if variance is None:
            return None
        return math.sqrt(variance)
