"""Command line interface for querying data files.

This module provides a command line interface that loads data files
as tables of an in-memory backend (see :mod:`framequery.backends.memory`)
and queries one of them through the table expressions API.

The results of the execution are printed to the console in a tabular format
using the :mod:`framequery.utils.tabulate` module, or rendered as SQL
when the ``--sql`` option is provided.
"""

import argparse

from framequery.backends.memory import Backend
from framequery.exceptions import FrameQueryError
from framequery.utils import tabulate


def main(argv: list[str] | None = None) -> int:
    """Parse the command line arguments and run the query."""
    parser = argparse.ArgumentParser(description="Query CSV and Parquet files.")
    parser.add_argument(
        "-t",
        "--table",
        action="append",
        help="Map a table name to a filepath. Can be provided multiple times.",
    )
    parser.add_argument("name", type=str, help="The table to query.")
    parser.add_argument(
        "--columns", type=str, help="Comma separated list of the columns to show."
    )
    parser.add_argument(
        "--order-by",
        action="append",
        help="Sort by a column, append ':desc' to sort in descending order.",
    )
    parser.add_argument("--limit", type=int, help="Maximum number of rows to show.")
    parser.add_argument("--max-rows", type=int, default=20, help="Rows to print.")
    parser.add_argument(
        "--sql",
        metavar="DIALECT",
        help="Print the SQL of the query in the given dialect instead of running it.",
    )
    args = parser.parse_args(argv)

    backend = Backend()
    try:
        for table in args.table or []:
            if "=" not in table:
                parser.error(f"Invalid table mapping {table!r}, expected name=path")
            table_name, file_path = table.split("=", 1)
            if file_path.endswith(".parquet"):
                backend.read_parquet(file_path, table_name=table_name)
            else:
                backend.read_csv(file_path, table_name=table_name)

        expr = backend.table(args.name)
        if args.columns:
            expr = expr.select(*(c.strip() for c in args.columns.split(",")))
        if args.order_by:
            keys = []
            for key in args.order_by:
                column, _, direction = key.partition(":")
                keys.append(expr[column].desc() if direction == "desc" else expr[column].asc())
            expr = expr.order_by(*keys)
        if args.limit is not None:
            expr = expr.limit(args.limit)

        if args.sql:
            print(expr.compile(dialect=args.sql))
        else:
            print(tabulate.tabulate(expr.to_pyarrow(), max_rows=args.max_rows))
    except (FrameQueryError, OSError) as e:
        print(f"Invalid query, {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
