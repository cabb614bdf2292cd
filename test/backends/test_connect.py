import pyarrow as pa
import pyarrow.parquet
import pytest

import framequery as fq
from framequery.backends import FileBackend, MemoryBackend
from framequery.exceptions import BackendError


@pytest.mark.parametrize("url", ["memory://", "pyarrow://"])
def test_memory(url):
    con = fq.connect(url)
    assert isinstance(con, MemoryBackend)
    assert con.list_tables() == []


def test_options():
    assert fq.connect("memory://", dialect="duckdb").dialect == "duckdb"
    assert fq.connect("memory://").dialect is None


def test_directory(tmp_path):
    by_url = fq.connect(f"file://{tmp_path}")
    assert isinstance(by_url, FileBackend)
    assert by_url.path == tmp_path

    by_path = fq.connect(tmp_path)
    assert isinstance(by_path, FileBackend)
    assert fq.connect(str(tmp_path)).path == tmp_path


def test_data_files(tmp_path):
    csv = tmp_path / "penguins.csv"
    csv.write_text("species,body_mass_g\nAdelie,3750\n")
    con = fq.connect(csv)
    assert isinstance(con, MemoryBackend)
    assert con.list_tables() == ["penguins"]

    parquet = tmp_path / "numbers.parquet"
    pa.parquet.write_table(pa.table({"n": [1, 2]}), parquet)
    con = fq.connect(str(parquet))
    assert con.table("numbers").n.sum().execute() == 3


def test_unsupported_scheme():
    with pytest.raises(BackendError, match=r"Unsupported backend: s3://"):
        fq.connect("s3://bucket/penguins")


def test_unknown_path(tmp_path):
    with pytest.raises(BackendError, match="not a directory or a data file"):
        fq.connect(tmp_path / "penguins.txt")
