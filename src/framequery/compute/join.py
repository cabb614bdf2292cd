"""Combine the rows of two tables.

Rows are matched on equal keys by indexing the right
side in a dict of ``keys -> row positions`` and looking up
the keys of each left row. Matching produces two arrays of
positions, one per side, and row ``i`` of the output is made of
``left[left_positions[i]]`` and ``right[right_positions[i]]``.

Rows of outer joins without a match get a null position on
the other side, that :meth:`pyarrow.RecordBatch.take` fills with nulls.

A literal condition can replace the keys: ``True`` pairs
every left row with every right row, ``False`` pairs none,
leaving only the unmatched rows of outer joins.

>>> import pyarrow as pa
>>> from framequery.compute import JoinNode, PyArrowTableDataSource
>>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
>>> right = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
>>> next(JoinNode(["id"], ["id"], left, right).batches())
pyarrow.RecordBatch
id: int64
name: string
age: int64
----
id: [2,3]
name: ["Bob","Charlie"]
age: [30,25]
"""

import numpy as np
import pyarrow as pa

from .base import QueryPlanNode

JOIN_KINDS = ("inner", "left", "right", "outer", "semi", "anti", "cross")


def join_output_names(
    left_names: list[str],
    right_names: list[str],
    left_keys: list[str],
    right_keys: list[str],
    how: str,
    suffix: str = "_right",
) -> list[tuple[str, str, str]]:
    """Compute the columns emitted by a join.

    Returns a list of ``(side, source_column, output_column)``
    where side is ``"left"`` or ``"right"``.

    Left columns come first, then the right ones.
    For ``inner`` and ``left`` joins, the right keys with the same name
    of the matching left key are skipped, as they would duplicate it.
    Any other right column whose name is already taken gets the suffix.
    ``semi`` and ``anti`` joins only emit the left columns.

    >>> join_output_names(["id", "name"], ["id", "name", "age"], ["id"], ["id"], "inner")
    [('left', 'id', 'id'), ('left', 'name', 'name'), ('right', 'name', 'name_right'), ('right', 'age', 'age')]
    """
    output = [("left", name, name) for name in left_names]
    if how in ("semi", "anti"):
        return output

    collapsed = set()
    if how in ("inner", "left"):
        collapsed = {rk for lk, rk in zip(left_keys, right_keys) if lk == rk}

    taken = set(left_names)
    for name in right_names:
        if name in collapsed:
            continue
        output_name = name
        if output_name in taken:
            output_name = name + suffix
        output.append(("right", name, output_name))
        taken.add(output_name)
    return output


class JoinNode(QueryPlanNode):
    """Join two data sources.

    Supported kinds of join (``how``) are:

    * ``inner``: only rows that have a match in both tables.
    * ``left``: all rows of the left table, with nulls when there is no match.
    * ``right``: all rows of the right table, with nulls when there is no match.
    * ``outer``: all rows of both tables.
    * ``semi``: the rows of the left table that have a match, only left columns.
    * ``anti``: the rows of the left table that have no match, only left columns.
    * ``cross``: every row of the left table combined with every row of the right one.

    Rows are matched when all their keys are equal, null keys
    never match anything. When a literal ``condition``
    is provided instead of keys, it's ``True`` that matches any pair of rows
    and ``False`` that matches none of them.

    Supposing we have two tables::

        left:
        +----+--------+
        | id | name   |
        +----+--------+
        | 1  | Alice  |
        | 2  | Bob    |
        | 3  | Charlie|
        +----+--------+

        right:
        +----+-----+
        | id | age |
        +----+-----+
        | 3  | 25  |
        | 2  | 30  |
        +----+-----+

    We would perform the following steps:

    1. Build a hash table that maps each key of the right table
       to the rows where that key appears::

        {3: [0], 2: [1]}

    2. Look up each key of the left table in the hash table,
       for each match record the pair of left and right rows::

        left_indices = [1, 2]
        right_indices = [1, 0]

    3. For outer joins, add the rows that had no match.
       For example a left join would add row ``0`` of the left table
       paired with a null right row::

        left_indices = [1, 2, 0]
        right_indices = [1, 0, null]

    4. Take the rows at those indices from each table and combine
       the columns in a new table::

        +----+--------+-----+
        | id | name   | age |
        +----+--------+-----+
        | 2  | Bob    | 30  |
        | 3  | Charlie| 25  |
        | 1  | Alice  |     |
        +----+--------+-----+
    """

    def __init__(
        self,
        left_keys: list[str],
        right_keys: list[str],
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        how: str = "inner",
        condition: bool | None = None,
        left_schema: pa.Schema | None = None,
        right_schema: pa.Schema | None = None,
    ) -> None:
        """
        :param left_keys: The keys to join on in the left table.
        :param right_keys: The keys to join on in the right table.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param how: The kind of join to perform, one of :data:`JOIN_KINDS`.
        :param condition: A literal join condition to use instead of keys.
        :param left_schema: Schema of the left data, used when the left child emits no batches.
        :param right_schema: Schema of the right data, used when the right child emits no batches.
        """
        if how not in JOIN_KINDS:
            raise ValueError(f"Unsupported join kind: {how}")
        if len(left_keys) != len(right_keys):
            raise ValueError("Left and right keys must have the same length")
        if how == "cross":
            if left_keys or condition is not None:
                raise ValueError("Cross joins accept no keys or conditions")
            how, condition = "inner", True
        elif condition is None and not left_keys:
            raise ValueError("Joins require keys or a literal condition")
        elif condition is not None and left_keys:
            raise ValueError("Keys and literal condition are mutually exclusive")

        self.left_keys = list(left_keys)
        self.right_keys = list(right_keys)
        self.left_child = left_child
        self.right_child = right_child
        self.how = how
        self.condition = condition
        self.left_schema = left_schema
        self.right_schema = right_schema

    def __str__(self) -> str:
        if self.condition is not None:
            on = f"condition={self.condition}"
        else:
            on = f"left_keys={self.left_keys}, right_keys={self.right_keys}"
        return f"JoinNode(how={self.how}, {on}, left={self.left_child}, right={self.right_child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for large datasets.
        """
        left_rb = self._load(self.left_child, self.left_schema)
        right_rb = self._load(self.right_child, self.right_schema)

        left_indices, right_indices = self._match(left_rb, right_rb)

        if self.how in ("semi", "anti"):
            matched = np.zeros(left_rb.num_rows, dtype=bool)
            matched[left_indices] = True
            selected = matched if self.how == "semi" else ~matched
            yield left_rb.filter(pa.array(selected))
            return

        left_take = pa.array(left_indices, type=pa.int64())
        right_take = pa.array(right_indices, type=pa.int64())
        if self.how in ("left", "outer"):
            unmatched = np.setdiff1d(np.arange(left_rb.num_rows), left_indices)
            left_take = pa.concat_arrays([left_take, pa.array(unmatched, type=pa.int64())])
            right_take = pa.concat_arrays([right_take, pa.nulls(len(unmatched), pa.int64())])
        if self.how in ("right", "outer"):
            unmatched = np.setdiff1d(np.arange(right_rb.num_rows), right_indices)
            left_take = pa.concat_arrays([left_take, pa.nulls(len(unmatched), pa.int64())])
            right_take = pa.concat_arrays([right_take, pa.array(unmatched, type=pa.int64())])

        left_rows = left_rb.take(left_take)
        right_rows = right_rb.take(right_take)

        names = join_output_names(
            left_rb.schema.names,
            right_rb.schema.names,
            self.left_keys,
            self.right_keys,
            self.how,
        )
        columns = []
        for side, source, _ in names:
            if side == "left":
                columns.append(left_rows.column(source))
            else:
                columns.append(right_rows.column(source))
        yield pa.record_batch(columns, names=[output for _, _, output in names])

    def _load(
        self, child: QueryPlanNode, schema: pa.Schema | None
    ) -> pa.RecordBatch:
        # To perform joins we need all rows in memory
        # so that we can build the hash table and take rows by index.
        batches = list(child.batches())
        if not batches:
            if schema is None:
                raise ValueError(f"Unable to join {child}, it emitted no data")
            return pa.RecordBatch.from_pylist([], schema=schema)
        table = pa.Table.from_batches(batches).combine_chunks()
        if table.num_rows == 0:
            return batches[0]
        return table.to_batches()[0]

    def _match(
        self, left_rb: pa.RecordBatch, right_rb: pa.RecordBatch
    ) -> tuple[np.ndarray, np.ndarray]:
        """Find the pairs of matching rows."""
        left_count = left_rb.num_rows
        right_count = right_rb.num_rows

        if self.condition is True:
            return (
                np.repeat(np.arange(left_count), right_count),
                np.tile(np.arange(right_count), left_count),
            )
        elif self.condition is False:
            return np.array([], dtype=np.int64), np.array([], dtype=np.int64)

        # Build the hash table out of the right keys,
        # rows with null keys are never added as they can't match.
        right_keys = zip(*(right_rb.column(k).to_pylist() for k in self.right_keys))
        hashtable: dict[tuple, list[int]] = {}
        for idx, key in enumerate(right_keys):
            if None in key:
                continue
            hashtable.setdefault(key, []).append(idx)

        # Look up the left keys in the hash table, preserving
        # the order of the left table in the result.
        left_indices = []
        right_indices = []
        left_keys = zip(*(left_rb.column(k).to_pylist() for k in self.left_keys))
        for idx, key in enumerate(left_keys):
            for match in hashtable.get(key, ()):
                left_indices.append(idx)
                right_indices.append(match)
        return (
            np.array(left_indices, dtype=np.int64),
            np.array(right_indices, dtype=np.int64),
        )
