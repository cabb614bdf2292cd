"""Tour of FrameQuery on the Palmer penguins dataset.

Downloads the dataset on first run (see ``framequery.options.examples``).
"""

import pandas as pd

import framequery as fq
from framequery import selectors as s
from framequery.ml import pca

fq.options.interactive = True

penguins = fq.examples.penguins.fetch()
penguins = penguins.cast({"year": "int16"}).drop_null()
print(penguins)

# Average body mass of each species
print(
    penguins.group_by("species")
    .aggregate(avg_mass=penguins.body_mass_g.mean(), n=penguins.count())
    .order_by(fq.desc("avg_mass"))
)

# Normalize the measurements, then project them on their principal components
measurements = s.numeric() & ~s.c("year")
normalized = penguins.mutate(s.across(measurements, lambda c: (c - c.mean()) / c.std()))
components = pca(normalized, measurements)
print(
    normalized.mutate(row_number=fq.row_number())
    .join(components, "row_number")
    .select("species", "pc1", "pc2")
)

# Joins with literal predicates
islands = fq.memtable({"island": ["Torgersen", "Biscoe", "Dream"]})
print(penguins.join(islands, False).count())  # no rows
print(penguins.join(islands, True).count())  # every combination

# Arrays
print(fq.array([1, 2, 3]) + fq.array([4, 5]))
print(fq.array([1, 2]) * 2)
print(penguins.select(sizes=fq.array([penguins.bill_length_mm, penguins.body_mass_g])).head(3))

# URLs
links = fq.memtable({"url": ["https://allisonhorst.github.io/palmerpenguins/?ref=article#about"]})
print(links.select(host=links.url.host(), ref=links.url.query("ref"), anchor=links.url.fragment()))


# User defined functions
@fq.udf.scalar("string")
def size(mass):
    if mass is None:
        return None
    return "big" if mass > 4000 else "small"


print(penguins.group_by(size=size(penguins.body_mass_g)).count())

# SQL
expr = penguins.filter(penguins.year > 2008).group_by("species").count()
print(fq.to_sql(expr, dialect="duckdb"))

# Any library supporting the dataframe interchange protocol can consume the results
print(pd.api.interchange.from_dataframe(expr).describe())
