"""Example datasets.

Datasets are downloaded the first time they are fetched
and cached locally (see ``options.examples``), then loaded
as a table of a backend::

    import framequery as fq
    penguins = fq.examples.penguins.fetch()

Available datasets are ``penguins`` and ``penguins_raw``,
the Palmer Archipelago penguins data.
"""

import logging
import os
import urllib.request
from pathlib import Path
from typing import Any

from .config import get_default_backend, options
from .expr.table import Table

logger = logging.getLogger(__name__)

DATASETS = {
    "penguins": "Size measurements of adult penguins near Palmer Station, Antarctica.",
    "penguins_raw": "The raw penguins data, as provided by the Palmer Station LTER.",
}


class Example:
    """A dataset that can be fetched."""

    def __init__(self, name: str, description: str) -> None:
        self.name = name
        self.description = description

    def __repr__(self) -> str:
        return f"Example({self.name!r})"

    def path(self) -> Path:
        """Download the dataset, if not cached already, and return where it is."""
        cache_dir = Path(options.examples.cache_dir)
        path = cache_dir / f"{self.name}.csv"
        if path.exists():
            return path

        url = options.examples.base_url.rstrip("/") + f"/{self.name}.csv"
        cache_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading %s to %s", url, path)
        # Download to a different file, so an interrupted download isn't taken as cached.
        partial = path.with_suffix(".csv.part")
        urllib.request.urlretrieve(url, partial)
        os.replace(partial, path)
        return path

    def fetch(self, backend: Any = None, table_name: str | None = None) -> Table:
        """Load the dataset as a table.

        :param backend: The backend where to load the data,
                        the default backend when ``None``.
        :param table_name: The name of the table, defaults to the dataset name.
        """
        if backend is None:
            backend = get_default_backend()
        return backend.read_csv(self.path(), table_name=table_name or self.name)


def __getattr__(name: str) -> Example:
    if name in DATASETS:
        return Example(name, DATASETS[name])
    raise AttributeError(f"module {__name__!r} has no example dataset {name!r}")


def __dir__() -> list[str]:
    return sorted([*globals(), *DATASETS])
