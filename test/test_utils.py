import functools

import pyarrow as pa
import pyarrow.compute as pc

from framequery.utils.inspect import get_qualname
from framequery.utils.tabulate import format_value, tabulate


def test_qualname():
    assert get_qualname(pc.add) == "pyarrow.compute.add"
    assert get_qualname(functools.partial(pc.count, mode="all")) == "pyarrow.compute.count"
    assert get_qualname(tabulate) == "framequery.utils.tabulate.tabulate"
    assert get_qualname(pa.Table) == "pyarrow.lib.Table"


def test_format_value():
    assert format_value(None) == "NULL"
    assert format_value(True) == "true"
    assert format_value(1.0 / 3) == "0.33"
    assert format_value([1, None, 2.5]) == "[1, NULL, 2.50]"
    assert format_value("x" * 40, max_length=10) == "xxxxxxx..."


def test_tabulate():
    table = pa.table({"species": ["Adelie", "Gentoo", "Chinstrap"], "tags": [["a"], [], None]})
    assert tabulate(table, max_rows=2) == (
        "species | tags\n"
        "------- | ----\n"
        "Adelie  | [a]\n"
        "Gentoo  | []\n"
        "... and 1 more rows"
    )
