"""Render tables as plain text.

Used for the ``repr`` of tables in interactive sessions and
by the ``frameq`` command to print query results.

    >>> import pyarrow as pa
    >>> data = {
    ...     "species": ["Adelie", "Gentoo", "Chinstrap"],
    ...     "flipper_length_mm": [181, 217, None],
    ...     "bill_depth_mm": [18.7, 13.2, 17.9],
    ... }
    >>> print(tabulate(pa.RecordBatch.from_pydict(data)))
    species   | flipper_length_mm | bill_depth_mm
    --------- | ----------------- | -------------
    Adelie    | 181               | 18.70
    Gentoo    | 217               | 13.20
    Chinstrap | NULL              | 17.90
"""

from typing import Any

import pyarrow as pa


def tabulate(
    data: pa.RecordBatch | pa.Table, max_rows: int = 20, max_string_length: int = 30
) -> str:
    """Render the first ``max_rows`` rows of ``data``.

    When rows are left out, a last line tells how many.
    """
    names = data.column_names
    cells = [
        [format_value(record[name], max_string_length) for name in names]
        for record in data.slice(0, max_rows).to_pylist()
    ]
    widths = [
        max(len(name), *(len(row[idx]) for row in cells)) if cells else len(name)
        for idx, name in enumerate(names)
    ]

    lines = [_line(names, widths), _line(["-" * w for w in widths], widths)]
    lines.extend(_line(row, widths) for row in cells)
    if data.num_rows > max_rows:
        lines.append(f"... and {data.num_rows - max_rows} more rows")
    return "\n".join(lines)


def _line(cells: list[str], widths: list[int]) -> str:
    return " | ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()


def format_value(v: Any, max_length: int = 30) -> str:
    """Text of a single cell.

    Floats get 2 decimals, nulls become ``NULL`` and
    text longer than ``max_length`` is cut with ``...``.
    """
    if v is None:
        return "NULL"
    if isinstance(v, bool):
        return str(v).lower()
    if isinstance(v, float):
        return f"{v:.2f}"
    if isinstance(v, list):
        v = "[{}]".format(", ".join(format_value(item, max_length) for item in v))

    text = str(v)
    if len(text) > max_length:
        text = text[: max_length - 3] + "..."
    return text
