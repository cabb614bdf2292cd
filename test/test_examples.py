import pytest

import framequery as fq

CSV = "species,island,body_mass_g\nAdelie,Torgersen,3750\nGentoo,Biscoe,5000\n"


@pytest.fixture
def downloads(tmp_path, monkeypatch):
    monkeypatch.setattr(fq.options.examples, "cache_dir", tmp_path / "cache")
    monkeypatch.setattr(fq.options.examples, "base_url", "https://example.com/data/")

    calls = []

    def urlretrieve(url, filename):
        calls.append(url)
        with open(filename, "w") as f:
            f.write(CSV)

    monkeypatch.setattr("urllib.request.urlretrieve", urlretrieve)
    return calls


def test_fetch(downloads, tmp_path):
    con = fq.connect("memory://")
    penguins = fq.examples.penguins.fetch(backend=con)
    assert downloads == ["https://example.com/data/penguins.csv"]
    assert con.list_tables() == ["penguins"]
    assert penguins.columns == ["species", "island", "body_mass_g"]
    assert penguins.count().execute() == 2
    assert (tmp_path / "cache" / "penguins.csv").exists()
    assert not (tmp_path / "cache" / "penguins.csv.part").exists()


def test_cached(downloads):
    con = fq.connect("memory://")
    fq.examples.penguins_raw.fetch(backend=con, table_name="raw")
    fq.examples.penguins_raw.fetch(backend=con, table_name="raw_again")
    assert len(downloads) == 1
    assert con.list_tables() == ["raw", "raw_again"]


def test_default_backend(downloads, monkeypatch):
    monkeypatch.setattr(fq.options, "default_backend", None)
    penguins = fq.examples.penguins.fetch()
    assert fq.options.default_backend.list_tables() == ["penguins"]
    assert penguins.body_mass_g.max().execute() == 5000


def test_available_examples():
    assert repr(fq.examples.penguins) == "Example('penguins')"
    assert "Palmer" in fq.examples.penguins.description
    assert {"penguins", "penguins_raw"} <= set(dir(fq.examples))
    with pytest.raises(AttributeError, match="no example dataset 'iris'"):
        fq.examples.iris
