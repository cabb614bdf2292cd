import pyarrow as pa
import pyarrow.compute as pc
import pytest

from framequery.compute import (
    CastExpression,
    ColumnRef,
    FunctionCallExpression,
    Literal,
    ReductionExpression,
    RowNumberExpression,
    UDFExpression,
    col,
    lit,
)
from framequery.compute.expressions import broadcast


@pytest.fixture
def sample_batch():
    return pa.RecordBatch.from_arrays(
        [pa.array([1, 2, 3, 4, 5]), pa.array(["a", "b", "c", "d", "e"])],
        names=["numbers", "letters"],
    )


def test_function_call_str():
    expr = FunctionCallExpression(pc.add, ColumnRef("numbers"), lit(1))
    assert str(expr) == "pyarrow.compute.add(ColumnRef(numbers),Literal(<pyarrow.Int64Scalar: 1>))"


def test_function_call_nested(sample_batch):
    inner = FunctionCallExpression(pc.multiply, col("numbers"), 2)
    outer = FunctionCallExpression(pc.add, inner, lit(1))
    assert outer.apply(sample_batch).to_pylist() == [3, 5, 7, 9, 11]


def test_function_call_multiple_args(sample_batch):
    expr = FunctionCallExpression(
        pc.if_else,
        FunctionCallExpression(pc.greater, col("numbers"), 3),
        col("letters"),
        "x",
    )
    assert expr.apply(sample_batch).to_pylist() == ["x", "x", "x", "d", "e"]


def test_function_call_null_handling():
    batch = pa.record_batch({"numbers": [1, None, 3]})
    expr = FunctionCallExpression(pc.add, col("numbers"), lit(1))
    assert expr.apply(batch).to_pylist() == [2, None, 4]


def test_invalid_column(sample_batch):
    with pytest.raises(KeyError):
        FunctionCallExpression(pc.add, col("missing"), 1).apply(sample_batch)


def test_type_mismatch(sample_batch):
    with pytest.raises(pa.ArrowNotImplementedError):
        FunctionCallExpression(pc.add, col("letters"), 1).apply(sample_batch)


def test_literal(sample_batch):
    assert lit(3).apply(sample_batch) == pa.scalar(3)
    assert Literal(3, pa.float64()).apply(sample_batch).type == pa.float64()
    assert Literal(pa.scalar(3), pa.int8()).apply(sample_batch).type == pa.int8()


def test_cast(sample_batch):
    result = CastExpression(col("numbers"), pa.float64()).apply(sample_batch)
    assert result.type == pa.float64()
    assert CastExpression(lit(1), pa.string()).apply(sample_batch).as_py() == "1"


@pytest.mark.parametrize(
    "how, expected",
    [
        ("sum", 15),
        ("mean", 3.0),
        ("min", 1),
        ("max", 5),
        ("count", 5),
        ("var", 2.5),
    ],
)
def test_reduction(sample_batch, how, expected):
    result = ReductionExpression(how, col("numbers")).apply(sample_batch)
    assert result.as_py() == pytest.approx(expected)


def test_reduction_population_stddev(sample_batch):
    result = ReductionExpression("std", col("numbers"), ddof=0).apply(sample_batch)
    assert result.as_py() == pytest.approx(2**0.5)


def test_reduction_unknown():
    with pytest.raises(ValueError):
        ReductionExpression("median", col("numbers"))


def test_normalize_with_reductions(sample_batch):
    expr = FunctionCallExpression(
        pc.subtract, col("numbers"), ReductionExpression("mean", col("numbers"))
    )
    assert expr.apply(sample_batch).to_pylist() == [-2.0, -1.0, 0.0, 1.0, 2.0]


def test_row_number(sample_batch):
    assert RowNumberExpression().apply(sample_batch).to_pylist() == [0, 1, 2, 3, 4]


def test_udf_rows():
    batch = pa.record_batch({"mass": [3000, 5000, None]})

    def size(mass):
        if mass is None:
            return None
        return "big" if mass > 4000 else "small"

    expr = UDFExpression(size, col("mass"), type=pa.string())
    assert expr.apply(batch).to_pylist() == ["small", "big", None]
    assert str(expr).startswith("UDF:")


def test_udf_vectorized(sample_batch):
    expr = UDFExpression(
        lambda numbers, offset: pc.add(numbers, offset),
        col("numbers"),
        lit(10),
        type=pa.float64(),
        vectorized=True,
    )
    result = expr.apply(sample_batch)
    assert result.type == pa.float64()
    assert result.to_pylist() == [11.0, 12.0, 13.0, 14.0, 15.0]


def test_broadcast():
    assert broadcast(pa.scalar(1), 3).to_pylist() == [1, 1, 1]
    assert broadcast("x", 2).to_pylist() == ["x", "x"]
    assert broadcast(pa.chunked_array([[1], [2]]), 2).to_pylist() == [1, 2]


def test_expressions_repr():
    expr = FunctionCallExpression(pc.add, col("numbers"), lit(1))
    assert repr(col("numbers")) == "ColumnRef(numbers)"
    assert repr(expr) == str(expr)
