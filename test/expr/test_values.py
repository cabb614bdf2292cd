import math

import pandas as pd
import pyarrow as pa
import pytest

import framequery as fq
from framequery.exceptions import ExpressionError


@pytest.fixture
def t():
    return fq.memtable(
        {
            "species": ["Adelie", "Gentoo", "Gentoo", None],
            "body_mass_g": [3750, 5000, 4700, None],
            "flipper_length_mm": pa.array([181, 217, 210, 190], type=pa.int16()),
            "delta": [-1.5, 2.0, -0.5, None],
        },
        name="t",
    )


def test_repr(t):
    assert repr((t.body_mass_g + 1).mean()) == "Scalar(mean((body_mass_g + 1))) :: double"
    assert repr(t.species) == "Column(species) :: string"


def test_interactive_repr(t, monkeypatch):
    monkeypatch.setattr(fq.options, "interactive", True)
    assert repr(t.body_mass_g.max()) == "5000"


@pytest.mark.parametrize(
    "build, dtype",
    [
        (lambda t: t.body_mass_g + 1, pa.int64()),
        (lambda t: t.flipper_length_mm + t.body_mass_g, pa.int64()),
        (lambda t: t.body_mass_g + 0.5, pa.float64()),
        (lambda t: t.body_mass_g / 2, pa.float64()),
        (lambda t: t.flipper_length_mm ** 2, pa.float64()),
        (lambda t: t.body_mass_g > 4000, pa.bool_()),
        (lambda t: t.species == "Gentoo", pa.bool_()),
        (lambda t: (t.body_mass_g > 4000) & (t.species == "Gentoo"), pa.bool_()),
        (lambda t: -t.flipper_length_mm, pa.int16()),
        (lambda t: t.species.isnull(), pa.bool_()),
        (lambda t: t.body_mass_g.mean(), pa.float64()),
        (lambda t: t.flipper_length_mm.sum(), pa.int64()),
        (lambda t: t.flipper_length_mm.max(), pa.int16()),
        (lambda t: t.species.count(), pa.int64()),
        (lambda t: t.body_mass_g.std(), pa.float64()),
    ],
)
def test_types(t, build, dtype):
    assert build(t).type() == dtype


@pytest.mark.parametrize(
    "build",
    [
        lambda t: t.species + 1,
        lambda t: t.species * 2,
        lambda t: t.body_mass_g & True,
        lambda t: t.species.mean(),
        lambda t: t.species.sum(),
    ],
)
def test_invalid_types(t, build):
    with pytest.raises(ExpressionError):
        build(t)


def test_column_or_scalar(t):
    assert isinstance(t.body_mass_g + 1, fq.Column)
    assert isinstance(t.body_mass_g.mean(), fq.Scalar)
    assert isinstance(t.body_mass_g.mean() + 1, fq.Scalar)
    assert isinstance(t.body_mass_g - t.body_mass_g.mean(), fq.Column)
    assert isinstance(fq.literal(1) + 1, fq.Scalar)


def test_arithmetic(t):
    result = t.select(
        plus=t.body_mass_g + 1,
        minus=10 - t.flipper_length_mm,
        times=2 * t.flipper_length_mm,
        half=t.flipper_length_mm / 2,
        square=t.flipper_length_mm ** 2,
        magnitude=abs(t.delta),
        negated=-t.delta,
    ).to_pyarrow()
    assert result["plus"].to_pylist() == [3751, 5001, 4701, None]
    assert result["minus"].to_pylist() == [-171, -207, -200, -180]
    assert result["times"].to_pylist() == [362, 434, 420, 380]
    assert result["half"].to_pylist() == [90.5, 108.5, 105.0, 95.0]
    assert result["square"].to_pylist() == [32761.0, 47089.0, 44100.0, 36100.0]
    assert result["magnitude"].to_pylist() == [1.5, 2.0, 0.5, None]
    assert result["negated"].to_pylist() == [1.5, -2.0, 0.5, None]


def test_logic(t):
    heavy = t.body_mass_g > 4000
    gentoo = t.species == "Gentoo"
    result = t.select(
        both=heavy & gentoo,
        either=heavy | (t.flipper_length_mm < 185),
        neither=~heavy,
        unknown=t.species.isnull(),
        known=t.body_mass_g.notnull(),
    ).to_pyarrow()
    assert result["both"].to_pylist() == [False, True, True, None]
    assert result["either"].to_pylist() == [True, True, True, None]
    assert result["neither"].to_pylist() == [True, False, False, None]
    assert result["unknown"].to_pylist() == [False, False, False, True]
    assert result["known"].to_pylist() == [True, True, True, False]


def test_cast_keeps_name(t):
    value = t.flipper_length_mm.cast("float64")
    assert value.get_name() == "flipper_length_mm"
    assert value.type() == pa.float64()
    assert t.select(value).columns == ["flipper_length_mm"]


def test_name(t):
    value = (t.body_mass_g / 1000).name("mass_kg")
    assert value.get_name() == "mass_kg"
    assert isinstance(value, fq.Column)


def test_reductions(t):
    assert t.body_mass_g.sum().execute() == 13450
    assert t.body_mass_g.min().execute() == 3750
    assert t.species.max().execute() == "Gentoo"
    assert t.species.count().execute() == 3
    assert t.body_mass_g.mean().execute() == pytest.approx(13450 / 3)


def test_std_and_var(t):
    assert t.flipper_length_mm.var().execute() == pytest.approx(283.0)
    assert t.flipper_length_mm.var("pop").execute() == pytest.approx(212.25)
    assert t.flipper_length_mm.std().execute() == pytest.approx(math.sqrt(283.0))
    with pytest.raises(ExpressionError):
        t.flipper_length_mm.std("median")


def test_scalar_of_reduction_expression(t):
    assert (t.body_mass_g.max() - t.body_mass_g.min()).execute() == 1250


def test_scalars_of_empty_tables():
    empty = fq.memtable({"x": pa.array([], type=pa.float64())})
    assert empty.x.mean().execute() is None
    assert (empty.x.mean() + 1).execute() is None
    assert (empty.count() + 1).execute() == 1
    result = (empty.x.sum() + 1).to_pyarrow()
    assert result.type == pa.float64()
    assert result.as_py() is None


def test_variance_of_large_values():
    t = fq.memtable({"group": ["a", "a", "a"], "x": [1e9, 1e9 + 1, 1e9 + 2]})
    assert t.x.var().execute() == pytest.approx(1.0)
    assert t.x.std("pop").execute() == pytest.approx(math.sqrt(2 / 3))
    grouped = t.group_by("group").aggregate(var=t.x.var()).to_pylist()
    assert grouped == [{"group": "a", "var": pytest.approx(1.0)}]


def test_literal():
    assert fq.literal(1).type() == pa.int64()
    assert fq.literal(1.0).type() == pa.float64()
    assert fq.literal("x").type() == pa.string()
    assert fq.literal(1, "int8").type() == pa.int8()
    assert fq.literal(None).type() == pa.null()
    assert fq.literal(3).execute() == 3


def test_literal_arithmetic():
    assert (fq.literal(2) + 3).execute() == 5
    assert (fq.literal(1) / 4).execute() == 0.25


def test_column_execute(t):
    series = t.body_mass_g.execute()
    assert isinstance(series, pd.Series)
    assert series.name == "body_mass_g"
    assert t.species.to_pyarrow().to_pylist() == ["Adelie", "Gentoo", "Gentoo", None]


def test_as_table(t):
    assert t.species.as_table().columns == ["species"]
    assert fq.literal(1).name("one").as_table().to_pylist() == [{"one": 1}]


def test_sort_keys(t):
    assert str(t.body_mass_g.desc()) == "desc(body_mass_g)"
    assert str(fq.asc(t.species)) == "asc(species)"


def test_url_functions():
    t = fq.memtable(
        {"url": ["https://user@example.com:8443/a/b.html?id=7&lang=en#top", None]}
    )
    result = t.select(
        t.url.protocol().name("protocol"),
        t.url.host().name("host"),
        t.url.port().name("port"),
        t.url.authority().name("authority"),
        t.url.userinfo().name("userinfo"),
        t.url.path().name("path"),
        t.url.file().name("file"),
        t.url.query().name("query"),
        t.url.query("lang").name("lang"),
        t.url.fragment().name("fragment"),
    ).to_pylist()
    assert result == [
        {
            "protocol": "https",
            "host": "example.com",
            "port": "8443",
            "authority": "user@example.com:8443",
            "userinfo": "user",
            "path": "/a/b.html",
            "file": "/a/b.html?id=7&lang=en",
            "query": "id=7&lang=en",
            "lang": "en",
            "fragment": "top",
        },
        {key: None for key in result[0]},
    ]


def test_url_functions_require_strings(t):
    with pytest.raises(ExpressionError):
        t.body_mass_g.host()


def test_default_url_names():
    t = fq.memtable({"url": ["http://example.com"]})
    assert t.url.host().get_name() == "UrlHost(url)"
    assert t.url.query("q").get_name() == "UrlQuery(url, 'q')"
