import pyarrow as pa
import pytest

import framequery as fq
from framequery.expr import operations as ops
from framequery.exceptions import ExpressionError

SCHEMA = pa.schema([("species", pa.string()), ("body_mass_g", pa.int64())])


@pytest.fixture
def table():
    return ops.InMemoryTable(SCHEMA.empty_table(), name="penguins")


def test_field(table):
    field = ops.Field(table, "body_mass_g")
    assert field.dtype == pa.int64()
    assert field.shape == ops.COLUMNAR
    assert field.name == "body_mass_g"
    with pytest.raises(ExpressionError):
        ops.Field(table, "bill_length_mm")


def test_shapes(table):
    mass = ops.Field(table, "body_mass_g")
    assert ops.Literal(1).shape == ops.SCALAR
    assert ops.BinaryOp("+", mass, ops.Literal(1)).shape == ops.COLUMNAR
    assert ops.BinaryOp("+", ops.Literal(2), ops.Literal(1)).shape == ops.SCALAR
    assert ops.Reduction("sum", mass).shape == ops.SCALAR
    assert ops.ArrayValue([]).shape == ops.SCALAR
    with pytest.raises(ExpressionError):
        ops.Reduction("sum", ops.Literal(1))


def test_unsupported_operators(table):
    mass = ops.Field(table, "body_mass_g")
    with pytest.raises(ExpressionError):
        ops.BinaryOp("%", mass, mass)
    with pytest.raises(ExpressionError):
        ops.UnaryOp("sqrt", mass)
    with pytest.raises(ExpressionError):
        ops.Reduction("median", mass)


def test_walk_and_find_table(table):
    mass = ops.Field(table, "body_mass_g")
    value = ops.BinaryOp("-", mass, ops.Reduction("mean", mass))
    assert [type(op).__name__ for op in value.values()] == [
        "BinaryOp",
        "Field",
        "Reduction",
        "Field",
    ]
    assert ops.find_table(value) is table
    assert ops.find_table(ops.Literal(1)) is None
    assert ops.is_analytic(value)
    assert not ops.is_analytic(mass)
    assert ops.is_analytic(ops.RowNumber())


def test_memtable_names():
    first = ops.InMemoryTable(SCHEMA.empty_table())
    second = ops.InMemoryTable(SCHEMA.empty_table())
    assert first.name.startswith("memtable_")
    assert first.name != second.name


def test_project_requires_values(table):
    with pytest.raises(ExpressionError):
        ops.Project(table, {})


def test_aggregate_schema(table):
    mass = ops.Field(table, "body_mass_g")
    aggregate = ops.Aggregate(
        table,
        {"species": ops.Field(table, "species")},
        {"avg": ops.Reduction("mean", mass), "n": ops.CountStar(table)},
    )
    assert aggregate.schema == pa.schema(
        [("species", pa.string()), ("avg", pa.float64()), ("n", pa.int64())]
    )
    with pytest.raises(ExpressionError):
        ops.Aggregate(table, {}, {})
    with pytest.raises(ExpressionError):
        ops.Aggregate(table, {"one": ops.Literal(1)}, {"n": ops.CountStar(table)})


def test_join_schema(table):
    other = ops.InMemoryTable(
        pa.schema([("species", pa.string()), ("body_mass_g", pa.float64())]).empty_table()
    )
    join = ops.Join(table, other, "left", ["species"], ["species"])
    assert join.schema == pa.schema(
        [("species", pa.string()), ("body_mass_g", pa.int64()), ("body_mass_g_right", pa.float64())]
    )
    semi = ops.Join(table, other, "semi", ["species"], ["species"])
    assert semi.schema == SCHEMA
    with pytest.raises(ExpressionError):
        ops.Join(table, other, "inner", ["island"], ["island"])


def test_find_backends():
    con = fq.connect("memory://")
    t = con.create_table("penguins", SCHEMA.empty_table())
    m = fq.memtable(SCHEMA.empty_table())
    assert ops.find_backends(t.join(m, "species").op) == [con]
    assert ops.find_backends(t.join(t, "species").op) == [con]
    assert ops.find_backends(m.op) == []


def test_str(table):
    mass = ops.Field(table, "body_mass_g")
    expr = ops.Filter(table, [ops.BinaryOp(">", mass, ops.Literal(4000))])
    assert str(expr) == "Filter((body_mass_g > 4000), parent=InMemoryTable(penguins))"


def test_repr(table):
    mass = ops.Field(table, "body_mass_g")
    assert repr(mass) == str(mass)
    assert repr(table) == "InMemoryTable(penguins)"
    assert repr(fq.memtable({"x": [1]}).op).startswith("InMemoryTable(")
