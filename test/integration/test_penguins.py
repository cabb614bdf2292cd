import pandas as pd
import pytest

import framequery as fq
from framequery import selectors as s

PENGUINS_CSV = """species,island,bill_length_mm,body_mass_g,sex,year
Adelie,Torgersen,39.1,3750,male,2007
Adelie,Torgersen,39.5,3800,female,2007
Adelie,Torgersen,NA,NA,NA,2007
Gentoo,Biscoe,46.1,4500,female,2007
Gentoo,Biscoe,50.0,5700,male,2008
Chinstrap,Dream,46.5,3500,female,2007
Chinstrap,Dream,50.0,3900,male,2008
"""


@pytest.fixture
def con(tmp_path):
    path = tmp_path / "penguins.csv"
    path.write_text(PENGUINS_CSV)
    return fq.connect(path)


@pytest.fixture
def penguins(con):
    return con.table("penguins")


def test_average_mass_by_species(penguins):
    result = (
        penguins.drop_null()
        .group_by("species")
        .aggregate(avg_mass=penguins.body_mass_g.mean(), n=penguins.count())
        .order_by("species")
    )
    assert result.to_pylist() == [
        {"species": "Adelie", "avg_mass": 3775.0, "n": 2},
        {"species": "Chinstrap", "avg_mass": 3700.0, "n": 2},
        {"species": "Gentoo", "avg_mass": 5100.0, "n": 2},
    ]


def test_heavier_than_average(penguins):
    heavy = penguins.filter(penguins.body_mass_g > penguins.body_mass_g.mean())
    assert heavy.select("species", "body_mass_g").to_pylist() == [
        {"species": "Gentoo", "body_mass_g": 4500},
        {"species": "Gentoo", "body_mass_g": 5700},
    ]


def test_join_with_islands(con, penguins):
    islands = con.create_table(
        "islands",
        {"island": ["Torgersen", "Biscoe", "Dream"], "area_km2": [0.1, 6.5, 1.2]},
    )
    result = (
        penguins.join(islands, "island")
        .group_by("island", "area_km2")
        .count()
        .order_by(fq.desc("count"), "island")
    )
    assert result.to_pylist() == [
        {"island": "Torgersen", "area_km2": 0.1, "count": 3},
        {"island": "Biscoe", "area_km2": 6.5, "count": 2},
        {"island": "Dream", "area_km2": 1.2, "count": 2},
    ]


def test_normalize_measurements(penguins):
    clean = penguins.drop_null()
    normalized = clean.mutate(
        s.across(s.numeric() & ~s.c("year"), lambda c: (c - c.mean()) / c.std())
    )
    assert normalized.columns == clean.columns
    assert normalized.body_mass_g.type() == clean.body_mass_g.cast("float64").type()
    assert normalized.body_mass_g.mean().execute() == pytest.approx(0, abs=1e-9)
    assert normalized.bill_length_mm.std().execute() == pytest.approx(1)


def test_recent_penguins_per_sex(penguins):
    result = (
        penguins.filter(penguins.sex.notnull())
        .group_by(recent=penguins.year > 2007, sex=penguins.sex)
        .aggregate(heaviest=penguins.body_mass_g.max())
        .order_by("recent", "sex")
    )
    assert result.to_pylist() == [
        {"recent": False, "sex": "female", "heaviest": 4500},
        {"recent": False, "sex": "male", "heaviest": 3750},
        {"recent": True, "sex": "male", "heaviest": 5700},
    ]


def test_sql_rendering(penguins):
    expr = penguins.filter(penguins.year > 2007).group_by("species").count()
    sql = expr.compile()
    assert sql.startswith('SELECT\n  t0."species",\n  COUNT(*) AS "count"\nFROM (')
    assert 'FROM "penguins" AS t1' in sql
    assert sql.endswith('GROUP BY\n  t0."species"')


def test_results_interchange(penguins):
    result = penguins.drop_null().select("species", "body_mass_g")
    df = result.execute()
    assert isinstance(df, pd.DataFrame)
    assert len(df) == 6

    interchanged = pd.api.interchange.from_dataframe(result)
    assert interchanged["body_mass_g"].sum() == 25150


def test_store_results(tmp_path, penguins):
    store = fq.connect(f"file://{tmp_path / 'warehouse'}")
    summary = penguins.group_by("species").aggregate(total=penguins.body_mass_g.sum())
    store.create_table("summary", summary, format="csv")

    reloaded = fq.connect(tmp_path / "warehouse").table("summary")
    assert reloaded.total.sum().execute() == 25150
    assert sorted(reloaded.species.to_pyarrow().to_pylist()) == ["Adelie", "Chinstrap", "Gentoo"]
