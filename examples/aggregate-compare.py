import sys
import time

import pandas
import psutil

import framequery as fq

try:
    aggregation_type = sys.argv[1]
except IndexError:
    aggregation_type = None

con = fq.connect("data/measurements.parquet")
t = con.table("measurements")

if aggregation_type == "single":
    q = t.group_by("year").aggregate(total_mass=t.body_mass_g.sum())
elif aggregation_type == "multi":
    q = t.group_by("year", "island").aggregate(total_mass=t.body_mass_g.sum())
elif aggregation_type == "pandas":

    class PandasQuery:
        def to_pyarrow(self):
            df = pandas.read_parquet("data/measurements.parquet")
            return (
                df.groupby("year")
                .agg({"body_mass_g": "sum"})
                .rename(columns={"body_mass_g": "total_mass"})
            )

    q = PandasQuery()
else:
    print("Aggregation must be single, multi or pandas")
    sys.exit(1)

proc = psutil.Process()
start = time.time()
q.to_pyarrow()
end = time.time()

print(
    "TIME:",
    round(end - start, 1),
    "MEMORY:",
    proc.memory_full_info().rss // (1024 * 1024),
)
