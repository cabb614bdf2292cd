import textwrap

import pytest

import framequery as fq
from framequery.sql import SQLString, to_sql


def sql(text):
    return textwrap.dedent(text).strip()


@pytest.fixture
def t():
    return fq.memtable(
        {"species": ["Adelie"], "body_mass_g": [3750], "year": [2007]}, name="penguins"
    )


@pytest.fixture
def people():
    return fq.memtable({"id": [1], "name": ["Alice"]}, name="people")


@pytest.fixture
def ages():
    return fq.memtable({"id": [1], "age": [30]}, name="ages")


def test_sqlstring(t):
    result = to_sql(t)
    assert isinstance(result, SQLString)
    assert isinstance(result, str)
    assert result._repr_markdown_() == f"```sql\n{result}\n```"


def test_table(t):
    assert to_sql(t) == sql(
        """
        SELECT
          t0."species",
          t0."body_mass_g",
          t0."year"
        FROM "penguins" AS t0
        """
    )


def test_projection(t):
    assert to_sql(t.select("species", kg=t.body_mass_g / 1000)) == sql(
        """
        SELECT
          t0."species",
          (CAST(t0."body_mass_g" AS DOUBLE PRECISION) / 1000) AS "kg"
        FROM "penguins" AS t0
        """
    )


def test_nested_queries(t):
    expr = t.filter(t.year > 2007).select("species")
    assert to_sql(expr) == sql(
        """
        SELECT
          t0."species"
        FROM (
          SELECT
            t1."species",
            t1."body_mass_g",
            t1."year"
          FROM "penguins" AS t1
          WHERE
            (t1."year" > 2007)
        ) AS t0
        """
    )


def test_multiple_predicates(t):
    expr = t.filter(t.year > 2007, t.species.isnull() | (t.species != "O'Brien"))
    assert to_sql(expr).endswith(
        "WHERE\n"
        '  (t0."year" > 2007)\n'
        "  AND (t0.\"species\" IS NULL OR (t0.\"species\" <> 'O''Brien'))"
    )


def test_aggregation(t):
    expr = t.group_by("species").aggregate(n=t.count(), avg=t.body_mass_g.mean())
    assert to_sql(expr) == sql(
        """
        SELECT
          t0."species",
          COUNT(*) AS "n",
          AVG(t0."body_mass_g") AS "avg"
        FROM "penguins" AS t0
        GROUP BY
          t0."species"
        """
    )


def test_aggregation_without_groups(t):
    expr = t.aggregate(total=t.body_mass_g.sum())
    assert to_sql(expr) == sql(
        """
        SELECT
          SUM(t0."body_mass_g") AS "total"
        FROM "penguins" AS t0
        """
    )


def test_reduction_in_projection(t):
    expr = t.select(centered=t.body_mass_g - t.body_mass_g.mean())
    assert '(t0."body_mass_g" - AVG(t0."body_mass_g") OVER ()) AS "centered"' in to_sql(expr)


def test_reduction_in_filter(t):
    expr = t.filter(t.body_mass_g > t.body_mass_g.mean())
    assert to_sql(expr).endswith(
        sql(
            """
            WHERE
              (t0."body_mass_g" > (
                SELECT AVG(t1."body_mass_g")
                FROM "penguins" AS t1
              ))
            """
        )
    )


def test_order_by(t):
    expr = t.order_by(fq.desc("body_mass_g"), "species")
    assert to_sql(expr).endswith(
        sql(
            """
            ORDER BY
              t0."body_mass_g" DESC NULLS LAST,
              t0."species" ASC NULLS LAST
            """
        )
    )


def test_limit(t):
    assert to_sql(t.limit(10, offset=5)).endswith('FROM "penguins" AS t0\nLIMIT 10\nOFFSET 5')
    assert to_sql(t.limit(3)).endswith('FROM "penguins" AS t0\nLIMIT 3')


def test_inner_join(people, ages):
    assert to_sql(people.join(ages, "id")) == sql(
        """
        SELECT
          t0."id",
          t0."name",
          t1."age"
        FROM "people" AS t0
        INNER JOIN "ages" AS t1
          ON t0."id" = t1."id"
        """
    )


def test_outer_join(people, ages):
    assert to_sql(people.outer_join(ages, "id")) == sql(
        """
        SELECT
          t0."id",
          t0."name",
          t1."id" AS "id_right",
          t1."age"
        FROM "people" AS t0
        FULL OUTER JOIN "ages" AS t1
          ON t0."id" = t1."id"
        """
    )


def test_literal_join(people, ages):
    assert to_sql(people.join(ages, False)).endswith('INNER JOIN "ages" AS t1\n  ON FALSE')
    assert to_sql(people.left_join(ages, True)).endswith('LEFT OUTER JOIN "ages" AS t1\n  ON TRUE')


def test_semi_join(people, ages):
    assert to_sql(people.semi_join(ages, "id")) == sql(
        """
        SELECT
          t0."id",
          t0."name"
        FROM "people" AS t0
        WHERE
          EXISTS (
            SELECT 1
            FROM "ages" AS t1
            WHERE
              t0."id" = t1."id"
          )
        """
    )
    assert "NOT EXISTS (" in to_sql(people.anti_join(ages, "id"))


def test_cross_join(people, ages):
    assert to_sql(people.cross_join(ages)).endswith('FROM "people" AS t0\nCROSS JOIN "ages" AS t1')


def test_values(t):
    assert to_sql(t.species) == sql(
        """
        SELECT
          t0."species"
        FROM "penguins" AS t0
        """
    )
    assert 'SUM(t0."body_mass_g") OVER () AS "sum(body_mass_g)"' in to_sql(t.body_mass_g.sum())


@pytest.mark.parametrize(
    "build, expected",
    [
        (lambda t: t.year.cast("int16"), 'CAST(t0."year" AS SMALLINT) AS "year"'),
        (lambda t: (t.year ** 2).name("v"), 'POWER(t0."year", 2) AS "v"'),
        (lambda t: (-t.year).name("v"), '-(t0."year") AS "v"'),
        (lambda t: abs(t.year).name("v"), 'ABS(t0."year") AS "v"'),
        (lambda t: (~(t.year > 1)).name("v"), 'NOT (t0."year" > 1) AS "v"'),
        (lambda t: t.species.notnull().name("v"), 't0."species" IS NOT NULL AS "v"'),
        (lambda t: (t.year == True).name("v"), '(t0."year" = TRUE) AS "v"'),
        (lambda t: fq.row_number().name("v"), '(ROW_NUMBER() OVER () - 1) AS "v"'),
        (lambda t: t.body_mass_g.std().name("v"), 'STDDEV_SAMP(t0."body_mass_g") OVER () AS "v"'),
        (lambda t: t.body_mass_g.var("pop").name("v"), 'VAR_POP(t0."body_mass_g") OVER () AS "v"'),
        (lambda t: fq.literal(None).name("v"), 'NULL AS "v"'),
        (lambda t: fq.literal(2.5).name("v"), '2.5 AS "v"'),
    ],
)
def test_value_rendering(t, build, expected):
    assert expected in to_sql(t.select(build(t)))


def test_negating_negative_values(t):
    assert to_sql(t.select(y=-(-t.year))) == sql(
        """
        SELECT
          -(-(t0."year")) AS "y"
        FROM "penguins" AS t0
        """
    )
    assert '-(-1) AS "v"' in to_sql(t.select(v=-fq.literal(-1)))
    assert "--" not in to_sql(t.select(v=t.year - (-t.year)))


def test_date_literals(t):
    import datetime

    expr = t.select(d=fq.literal(datetime.date(2007, 11, 10)))
    assert "CAST('2007-11-10' AS DATE) AS \"d\"" in to_sql(expr)


def test_udf(t):
    @fq.udf.scalar("string")
    def size(mass):
        return "big" if mass > 4000 else "small"

    assert '"size"(t0."body_mass_g") AS "size(body_mass_g)"' in to_sql(t.select(size(t.body_mass_g)))


def test_default_dialect(t, monkeypatch):
    expr = t.select(a=fq.array([t.year, 1]))
    assert 'ARRAY[t0."year", 1] AS "a"' in to_sql(expr)
    monkeypatch.setattr(fq.options.sql, "dialect", "duckdb")
    assert '[t0."year", 1] AS "a"' in to_sql(expr)
    assert "ARRAY[" not in to_sql(expr)


def test_backend_dialect():
    con = fq.connect("memory://", dialect="sqlite")
    t = con.create_table("flags", {"flag": [True]})
    assert "(t0.\"flag\" = 1)" in t.filter(t.flag == True).compile()
    assert "(t0.\"flag\" = TRUE)" in t.filter(t.flag == True).compile(dialect="ansi")
    assert con.compile(t.flag) == t.flag.as_table().compile()
