import pytest

import framequery as fq
from framequery.exceptions import BackendError, ExpressionError


@pytest.fixture
def people():
    return fq.memtable(
        {"id": [1, 2, 3, 4], "name": ["Alice", "Bob", "Charlie", "David"]}, name="people"
    )


@pytest.fixture
def ages():
    return fq.memtable({"id": [4, 3, 5, 6], "age": [30, 25, 35, 40]}, name="ages")


def test_join_on_name(people, ages):
    result = people.join(ages, "id")
    assert result.columns == ["id", "name", "age"]
    assert result.to_pylist() == [
        {"id": 3, "name": "Charlie", "age": 25},
        {"id": 4, "name": "David", "age": 30},
    ]


@pytest.mark.parametrize(
    "predicate",
    [
        lambda l, r: l.id == r.id,
        lambda l, r: r.id == l.id,
        lambda l, r: ("id", "id"),
        lambda l, r: [(l.id, r.id)],
    ],
)
def test_join_predicates(people, ages, predicate):
    result = people.join(ages, predicate(people, ages))
    assert result.columns == ["id", "name", "age"]
    assert result.name.to_pyarrow().to_pylist() == ["Charlie", "David"]


def test_join_different_names(people):
    pets = fq.memtable({"owner": [2, 2], "pet": ["cat", "dog"]})
    result = people.join(pets, people.id == pets.owner)
    assert result.columns == ["id", "name", "owner", "pet"]
    assert result.pet.to_pyarrow().to_pylist() == ["cat", "dog"]


@pytest.mark.parametrize(
    "how, names, columns",
    [
        ("inner", ["Charlie", "David"], ["id", "name", "age"]),
        ("left", ["Charlie", "David", "Alice", "Bob"], ["id", "name", "age"]),
        ("right", ["Charlie", "David", None, None], ["id", "name", "id_right", "age"]),
        ("outer", ["Charlie", "David", "Alice", "Bob", None, None], ["id", "name", "id_right", "age"]),
        ("semi", ["Charlie", "David"], ["id", "name"]),
        ("anti", ["Alice", "Bob"], ["id", "name"]),
    ],
)
def test_join_kinds(people, ages, how, names, columns):
    result = people.join(ages, "id", how=how)
    assert result.columns == columns
    assert result.name.to_pyarrow().to_pylist() == names


def test_join_helpers(people, ages):
    assert people.left_join(ages, "id").count().execute() == 4
    assert people.right_join(ages, "id").count().execute() == 4
    assert people.outer_join(ages, "id").count().execute() == 6
    assert people.inner_join(ages, "id").count().execute() == 2
    assert people.semi_join(ages, "id").count().execute() == 2
    assert people.anti_join(ages, "id").count().execute() == 2
    assert people.cross_join(ages).count().execute() == 16


def test_false_literal_inner_join_is_empty(people, ages):
    result = people.join(ages, False)
    assert result.columns == ["id", "name", "id_right", "age"]
    assert result.count().execute() == 0


def test_false_literal_outer_join_pads_nulls(people, ages):
    result = people.outer_join(ages, fq.literal(False)).to_pyarrow()
    assert result.num_rows == 8
    assert result["age"].to_pylist() == [None] * 4 + [30, 25, 35, 40]
    assert result["name"].to_pylist() == ["Alice", "Bob", "Charlie", "David"] + [None] * 4


def test_false_literal_overrides_keys(people, ages):
    assert people.join(ages, ["id", False]).count().execute() == 0
    assert people.left_join(ages, ["id", False]).count().execute() == 4


def test_true_literal_is_a_cross_join(people, ages):
    assert people.join(ages, True).count().execute() == 16
    assert people.join(ages, ["id", True]).count().execute() == 2


def test_join_then_aggregate(people, ages):
    joined = people.join(ages, "id")
    assert joined.age.sum().execute() == 55


def test_invalid_joins(people, ages):
    with pytest.raises(ExpressionError):
        people.join(ages)
    with pytest.raises(ExpressionError):
        people.join(ages, people.id > ages.id)
    with pytest.raises(ExpressionError):
        people.join(ages, "name")
    with pytest.raises(ExpressionError):
        people.join(ages, "id", how="sideways")
    with pytest.raises(ExpressionError):
        people.join(ages, "id", how="cross")


def test_join_across_backends():
    first = fq.connect("memory://")
    second = fq.connect("memory://")
    left = first.create_table("people", {"id": [1]})
    right = second.create_table("ages", {"id": [1]})
    with pytest.raises(BackendError):
        left.join(right, "id").to_pyarrow()


def test_select_columns_of_the_joined_tables():
    left = fq.memtable({"id": [1, 2], "value": [10, 20]})
    right = fq.memtable({"id": [1, 2], "value": [100, 200]})
    joined = left.join(right, "id")
    assert joined.columns == ["id", "value", "value_right"]
    assert joined.select(right.value).to_pylist() == [{"value_right": 100}, {"value_right": 200}]
    assert joined.select(left.value, right.id).to_pylist() == [
        {"value": 10, "id": 1},
        {"value": 20, "id": 2},
    ]
    assert joined.filter(right.value > 150).value.to_pyarrow().to_pylist() == [20]


def test_select_columns_of_the_joined_tables_after_filter(people, ages):
    joined = people.join(ages, "id").filter(ages.age > 26)
    assert joined.select(people.name, ages.age).to_pylist() == [{"name": "David", "age": 30}]


def test_select_columns_of_unrelated_tables(people, ages):
    other = fq.memtable({"id": [1], "age": [1]})
    with pytest.raises(ExpressionError):
        people.join(ages, "id").select(other.age)
