import pyarrow as pa
import pyarrow.compute as pc
import pytest

from framequery.compute import (
    FunctionCallExpression,
    PyArrowTableDataSource,
    ReductionExpression,
    col,
    lit,
)
from framequery.compute.selection import ProjectNode


@pytest.fixture
def measures():
    return pa.table(
        {
            "bill_length_mm": [39.1, 46.1, 46.5],
            "bill_depth_mm": [18.7, 13.2, 17.9],
            "body_mass_g": [3750, 4500, 3500],
        }
    )


def _bill_sum():
    return FunctionCallExpression(pc.add, col("bill_length_mm"), col("bill_depth_mm"))


def _run(node):
    batches = list(node.batches())
    assert len(batches) == 1
    return batches[0]


def test_str(measures):
    node = ProjectNode(["body_mass_g"], {"bill": _bill_sum()}, PyArrowTableDataSource(measures))
    assert str(node) == (
        "ProjectNode(select=['body_mass_g'], "
        "project={'bill': pyarrow.compute.add(ColumnRef(bill_length_mm),ColumnRef(bill_depth_mm))}, "
        "child=PyArrowTableDataSource(columns=['bill_length_mm', 'bill_depth_mm', 'body_mass_g'], rows=3))"
    )


def test_select_columns(measures):
    batch = _run(ProjectNode(["body_mass_g", "bill_length_mm"], {}, PyArrowTableDataSource(measures)))
    assert batch.column_names == ["body_mass_g", "bill_length_mm"]
    assert batch["body_mass_g"].to_pylist() == [3750, 4500, 3500]


def test_select_and_project(measures):
    batch = _run(ProjectNode(["body_mass_g"], {"bill": _bill_sum()}, PyArrowTableDataSource(measures)))
    assert batch.column_names == ["body_mass_g", "bill"]
    assert batch["bill"].to_pylist() == pytest.approx([57.8, 59.3, 64.4])


def test_project_only(measures):
    batch = _run(ProjectNode([], {"bill": _bill_sum()}, PyArrowTableDataSource(measures)))
    assert batch.column_names == ["bill"]


def test_select_all_and_project(measures):
    batch = _run(ProjectNode(None, {"bill": _bill_sum()}, PyArrowTableDataSource(measures)))
    assert batch.column_names == ["bill_length_mm", "bill_depth_mm", "body_mass_g", "bill"]


def test_replace_keeps_position(measures):
    kg = FunctionCallExpression(pc.divide, col("body_mass_g"), lit(1000.0))
    batch = _run(ProjectNode(None, {"bill_length_mm": kg}, PyArrowTableDataSource(measures)))
    assert batch.column_names == ["bill_length_mm", "bill_depth_mm", "body_mass_g"]
    assert batch["bill_length_mm"].to_pylist() == [3.75, 4.5, 3.5]


def test_scalars_are_broadcast(measures):
    batch = _run(
        ProjectNode(
            [],
            {
                "one": lit(1),
                "max_mass": ReductionExpression("max", col("body_mass_g")),
            },
            PyArrowTableDataSource(measures),
        )
    )
    assert batch.to_pydict() == {"one": [1, 1, 1], "max_mass": [4500, 4500, 4500]}


def test_project_nothing(measures):
    batch = _run(ProjectNode([], {}, PyArrowTableDataSource(measures)))
    assert batch.num_columns == 0
