import pytest

from framequery.commands.frameq import main


@pytest.fixture
def penguins(tmp_path):
    path = tmp_path / "penguins.csv"
    path.write_text(
        "species,island,body_mass_g\n"
        "Adelie,Torgersen,3750\n"
        "Gentoo,Biscoe,5000\n"
        "Chinstrap,Dream,3500\n"
    )
    return path


def test_query(penguins, capsys):
    argv = [
        "-t",
        f"penguins={penguins}",
        "penguins",
        "--columns",
        "species, body_mass_g",
        "--order-by",
        "body_mass_g:desc",
        "--limit",
        "2",
    ]
    assert main(argv) == 0
    assert capsys.readouterr().out == (
        "species | body_mass_g\n"
        "------- | -----------\n"
        "Gentoo  | 5000\n"
        "Adelie  | 3750\n"
    )


def test_max_rows(penguins, capsys):
    assert main(["-t", f"penguins={penguins}", "penguins", "--max-rows", "1"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[2] == "Adelie  | Torgersen | 3750"
    assert out.endswith("... and 2 more rows\n")


def test_sql(penguins, capsys):
    argv = ["-t", f"p={penguins}", "p", "--order-by", "species", "--sql", "sqlite"]
    assert main(argv) == 0
    out = capsys.readouterr().out
    assert 'FROM "p" AS t0' in out
    assert 't0."species" ASC NULLS LAST' in out


def test_invalid_table(penguins, capsys):
    assert main(["-t", f"penguins={penguins}", "missing"]) == 1
    assert capsys.readouterr().out == "Invalid query, Table 'missing' not found\n"


def test_invalid_mapping(penguins):
    with pytest.raises(SystemExit):
        main(["-t", str(penguins), "penguins"])
