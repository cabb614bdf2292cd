"""Extract parts of URLs stored in string columns.

Arrow doesn't provide compute functions to parse URLs,
so parsing is done in Python through :func:`urllib.parse.urlsplit`
one row at the time.

>>> import pyarrow as pa
>>> from framequery.compute import col
>>> data = pa.record_batch({"url": ["https://user@example.com:8080/docs/index.html?q=1#top", None]})
>>> UrlExtractExpression("host", col("url")).apply(data).to_pylist()
['example.com', None]
>>> UrlExtractExpression("query", col("url"), key="q").apply(data).to_pylist()
['1', None]
"""

from typing import Callable
from urllib.parse import SplitResult, parse_qs, urlsplit

import pyarrow as pa

from .base import Expression
from .expressions import apply_expression_if_needed, broadcast


def _port(url: SplitResult) -> str | None:
    port = url.port
    return None if port is None else str(port)


def _userinfo(url: SplitResult) -> str | None:
    if "@" not in url.netloc:
        return None
    return url.netloc.rsplit("@", 1)[0]


def _file(url: SplitResult) -> str | None:
    if url.query:
        return f"{url.path}?{url.query}"
    return url.path


URL_PARTS: dict[str, Callable[[SplitResult], str | None]] = {
    "protocol": lambda url: url.scheme,
    "host": lambda url: url.hostname,
    "port": _port,
    "authority": lambda url: url.netloc,
    "userinfo": _userinfo,
    "path": lambda url: url.path,
    "file": _file,
    "query": lambda url: url.query,
    "fragment": lambda url: url.fragment,
}


class UrlExtractExpression(Expression):
    """Extract a part of the URL contained in each row.

    Empty parts are returned as empty strings, while
    null or invalid urls lead to null values.

    When extracting the ``query`` a ``key`` can be provided,
    in such case only the first value of that query string
    parameter is extracted.
    """

    def __init__(self, part: str, arg: Expression, key: str | None = None) -> None:
        """
        :param part: Which part to extract, one of :data:`URL_PARTS`.
        :param arg: The expression providing the urls.
        :param key: The query string parameter to extract.
        """
        if part not in URL_PARTS:
            raise ValueError(f"Unsupported URL part: {part}")
        if key is not None and part != "query":
            raise ValueError("A key can only be provided when extracting the query")
        self.part = part
        self.arg = arg
        self.key = key

    def __str__(self) -> str:
        key = f", key={self.key}" if self.key is not None else ""
        return f"UrlExtract({self.part}, {self.arg}{key})"

    def _extract(self, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            url = urlsplit(value)
            if self.key is not None:
                values = parse_qs(url.query).get(self.key)
                return values[0] if values else None
            return URL_PARTS[self.part](url)
        except ValueError:
            # Invalid urls, like those with a non numeric port.
            return None

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        column = broadcast(apply_expression_if_needed(batch, self.arg), batch.num_rows)
        return pa.array(
            [self._extract(value) for value in column.to_pylist()], type=pa.string()
        )
