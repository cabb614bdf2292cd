"""Backends provide tables and run the expressions built on them.

Use :func:`connect` to create a backend out of an URL or a path.
"""

import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from ..exceptions import BackendError
from .base import BaseBackend
from .files import FileBackend
from .memory import Backend as MemoryBackend

logger = logging.getLogger(__name__)

__all__ = ("connect", "BaseBackend", "MemoryBackend", "FileBackend")


def connect(resource: str | Path, **kwargs: Any) -> BaseBackend:
    """Connect to a backend.

    Supported resources are:

    * ``memory://`` or ``pyarrow://``: an empty in-memory backend.
    * ``file:///path/to/dir``: a directory of Parquet and CSV files.
    * a path to a directory, like ``file://`` URLs.
    * a path to a ``.csv`` or ``.parquet`` file: an in-memory backend
      with the file available as a table named after the file.

    Additional arguments are provided to the backend.

    >>> con = connect("memory://")
    >>> con.name
    'memory'
    """
    if isinstance(resource, Path):
        resource = str(resource)

    url = urlsplit(resource)
    if url.scheme in ("memory", "pyarrow"):
        backend: BaseBackend = MemoryBackend(**kwargs)
    elif url.scheme == "file":
        backend = FileBackend(url.netloc + url.path, **kwargs)
    elif url.scheme and len(url.scheme) > 1:
        # Single letter schemes are windows drive letters.
        raise BackendError(f"Unsupported backend: {url.scheme}://")
    else:
        path = Path(resource)
        if path.is_dir():
            backend = FileBackend(path, **kwargs)
        elif path.suffix == ".csv":
            backend = MemoryBackend(**kwargs)
            backend.read_csv(path)
        elif path.suffix == ".parquet":
            backend = MemoryBackend(**kwargs)
            backend.read_parquet(path)
        else:
            raise BackendError(f"Unable to connect to {resource}, not a directory or a data file")

    logger.debug("Connected to %s", backend)
    return backend
