"""Runtime options of FrameQuery.

Options are exposed as ``framequery.options`` and can be changed at any time::

    import framequery
    framequery.options.interactive = True
    framequery.options.sql.dialect = "duckdb"

Defaults can be provided through environment variables, which is convenient
when running notebooks or scripts in different environments:

* ``FRAMEQUERY_INTERACTIVE``: ``1``/``true`` to execute expressions on ``repr``.
* ``FRAMEQUERY_SQL_DIALECT``: the dialect used by :func:`framequery.to_sql`.
* ``FRAMEQUERY_EXAMPLES_URL``: where the example datasets are downloaded from.
* ``FRAMEQUERY_EXAMPLES_DIR``: where the example datasets are cached.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_EXAMPLES_URL = (
    "https://raw.githubusercontent.com/allisonhorst/palmerpenguins/main/inst/extdata/"
)
DEFAULT_EXAMPLES_DIR = Path.home() / ".cache" / "framequery" / "examples"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ReprOptions:
    """How tables are displayed when interactive mode is enabled."""

    max_rows: int = 10
    max_string_length: int = 30


@dataclass
class SQLOptions:
    """Options for SQL rendering."""

    dialect: str = field(
        default_factory=lambda: os.getenv("FRAMEQUERY_SQL_DIALECT", "ansi").strip()
    )


@dataclass
class ExamplesOptions:
    """Location of the example datasets."""

    base_url: str = field(
        default_factory=lambda: os.getenv(
            "FRAMEQUERY_EXAMPLES_URL", DEFAULT_EXAMPLES_URL
        ).strip()
    )
    cache_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("FRAMEQUERY_EXAMPLES_DIR", str(DEFAULT_EXAMPLES_DIR))
        )
    )


@dataclass
class Options:
    """All the FrameQuery options.

    ``default_backend`` is the backend used to run expressions
    that are not bound to any backend, like the ones built
    on top of :func:`framequery.memtable`. When ``None`` an
    in-memory backend is created on first use.
    """

    interactive: bool = field(
        default_factory=lambda: _env_flag("FRAMEQUERY_INTERACTIVE")
    )
    default_backend: Any = None
    repr: ReprOptions = field(default_factory=ReprOptions)
    sql: SQLOptions = field(default_factory=SQLOptions)
    examples: ExamplesOptions = field(default_factory=ExamplesOptions)


options = Options()


def get_default_backend() -> Any:
    """Return the default backend, creating an in-memory one if needed."""
    if options.default_backend is None:
        from .backends.memory import Backend

        options.default_backend = Backend()
    return options.default_backend
