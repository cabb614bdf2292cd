import os
import random

import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

ROWS = 1_000_000

if not os.path.exists("data"):
    os.mkdir("data")

if not os.path.exists("data/measurements.parquet"):
    species = ["Adelie", "Gentoo", "Chinstrap"]
    islands = ["Torgersen", "Biscoe", "Dream"]
    data = pa.table(
        {
            "species": [random.choice(species) for _ in range(ROWS)],
            "island": [random.choice(islands) for _ in range(ROWS)],
            "body_mass_g": [random.randint(2700, 6300) for _ in range(ROWS)],
            "year": [random.randint(2007, 2009) for _ in range(ROWS)],
        }
    )
    pa.parquet.write_table(data, "data/measurements.parquet")
    pa.csv.write_csv(data, "data/measurements.csv")
