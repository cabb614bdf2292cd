"""SQL dialects supported by :func:`framequery.to_sql`.

Dialects differ in the names of types, how booleans and
arrays are written and which functions are available.
Anything a dialect can't express raises
:class:`framequery.exceptions.UnsupportedOperationError`.
"""

import pyarrow as pa

from ..exceptions import UnsupportedOperationError


class Dialect:
    """ANSI SQL, the default dialect."""

    name = "ansi"

    INTEGER_TYPES = {
        8: "SMALLINT",
        16: "SMALLINT",
        32: "INTEGER",
        64: "BIGINT",
    }
    UNSIGNED_TYPES = {
        8: "SMALLINT",
        16: "INTEGER",
        32: "BIGINT",
        64: "DECIMAL(20, 0)",
    }
    FLOAT_TYPE = "REAL"
    DOUBLE_TYPE = "DOUBLE PRECISION"
    STRING_TYPE = "VARCHAR"
    BINARY_TYPE = "VARBINARY"
    BOOLEAN_TYPE = "BOOLEAN"
    DATE_TYPE = "DATE"
    TIMESTAMP_TYPE = "TIMESTAMP"

    REDUCTIONS = {
        "sum": "SUM",
        "mean": "AVG",
        "min": "MIN",
        "max": "MAX",
        "count": "COUNT",
        "std": ("STDDEV_POP", "STDDEV_SAMP"),
        "var": ("VAR_POP", "VAR_SAMP"),
    }

    URL_PARTS = {
        "protocol": "PROTOCOL",
        "host": "HOST",
        "authority": "AUTHORITY",
        "userinfo": "USERINFO",
        "path": "PATH",
        "file": "FILE",
        "query": "QUERY",
        "fragment": "REF",
    }

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def string(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def boolean(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def type_name(self, dtype: pa.DataType) -> str:
        if pa.types.is_boolean(dtype):
            return self.BOOLEAN_TYPE
        elif pa.types.is_signed_integer(dtype):
            return self.INTEGER_TYPES[dtype.bit_width]
        elif pa.types.is_unsigned_integer(dtype):
            return self.UNSIGNED_TYPES[dtype.bit_width]
        elif pa.types.is_float32(dtype) or pa.types.is_float16(dtype):
            return self.FLOAT_TYPE
        elif pa.types.is_float64(dtype):
            return self.DOUBLE_TYPE
        elif pa.types.is_string(dtype) or pa.types.is_large_string(dtype):
            return self.STRING_TYPE
        elif pa.types.is_binary(dtype) or pa.types.is_large_binary(dtype):
            return self.BINARY_TYPE
        elif pa.types.is_date(dtype):
            return self.DATE_TYPE
        elif pa.types.is_timestamp(dtype):
            return self.TIMESTAMP_TYPE
        elif pa.types.is_list(dtype) or pa.types.is_large_list(dtype):
            return self.array_type(self.type_name(dtype.value_type))
        raise UnsupportedOperationError(f"Type {dtype} is not supported by the {self.name} dialect")

    def array_type(self, element_type: str) -> str:
        return f"{element_type} ARRAY"

    def array(self, elements: list[str]) -> str:
        return f"ARRAY[{', '.join(elements)}]"

    def array_concat(self, left: str, right: str) -> str:
        return f"ARRAY_CONCAT({left}, {right})"

    def array_length(self, arg: str) -> str:
        return f"CARDINALITY({arg})"

    def reduction(self, how: str, arg: str, ddof: int) -> str:
        func = self.REDUCTIONS.get(how)
        if func is None:
            raise UnsupportedOperationError(f"{how} is not supported by the {self.name} dialect")
        if isinstance(func, tuple):
            if ddof not in (0, 1):
                raise UnsupportedOperationError(f"Only sample and population {how} are supported")
            func = func[ddof]
        return f"{func}({arg})"

    def power(self, base: str, exponent: str) -> str:
        return f"POWER({base}, {exponent})"

    def url_extract(self, part: str, arg: str, key: str | None) -> str:
        name = self.URL_PARTS.get(part)
        if name is None:
            raise UnsupportedOperationError(
                f"Extracting the URL {part} is not supported by the {self.name} dialect"
            )
        args = [arg, self.string(name)]
        if key is not None:
            args.append(self.string(key))
        return f"PARSE_URL({', '.join(args)})"

    def limit(self, n: int | None, offset: int) -> list[str]:
        clauses = []
        if n is not None:
            clauses.append(f"LIMIT {n}")
        if offset:
            clauses.append(f"OFFSET {offset}")
        return clauses


class DuckDBDialect(Dialect):
    name = "duckdb"

    INTEGER_TYPES = {8: "TINYINT", 16: "SMALLINT", 32: "INTEGER", 64: "BIGINT"}
    UNSIGNED_TYPES = {8: "UTINYINT", 16: "USMALLINT", 32: "UINTEGER", 64: "UBIGINT"}
    FLOAT_TYPE = "FLOAT"
    DOUBLE_TYPE = "DOUBLE"
    BINARY_TYPE = "BLOB"

    def array_type(self, element_type: str) -> str:
        return f"{element_type}[]"

    def array(self, elements: list[str]) -> str:
        return f"[{', '.join(elements)}]"

    def array_concat(self, left: str, right: str) -> str:
        return f"LIST_CONCAT({left}, {right})"

    def array_length(self, arg: str) -> str:
        return f"LEN({arg})"

    def url_extract(self, part: str, arg: str, key: str | None) -> str:
        raise UnsupportedOperationError("URL functions are not supported by the duckdb dialect")


class PostgresDialect(Dialect):
    name = "postgres"

    UNSIGNED_TYPES = {8: "SMALLINT", 16: "INTEGER", 32: "BIGINT", 64: "NUMERIC(20)"}
    STRING_TYPE = "TEXT"
    BINARY_TYPE = "BYTEA"

    def array_type(self, element_type: str) -> str:
        return f"{element_type}[]"

    def array_concat(self, left: str, right: str) -> str:
        return f"ARRAY_CAT({left}, {right})"

    def url_extract(self, part: str, arg: str, key: str | None) -> str:
        raise UnsupportedOperationError("URL functions are not supported by the postgres dialect")


class SQLiteDialect(Dialect):
    name = "sqlite"

    INTEGER_TYPES = {8: "INTEGER", 16: "INTEGER", 32: "INTEGER", 64: "INTEGER"}
    UNSIGNED_TYPES = INTEGER_TYPES
    FLOAT_TYPE = "REAL"
    DOUBLE_TYPE = "REAL"
    STRING_TYPE = "TEXT"
    BINARY_TYPE = "BLOB"
    BOOLEAN_TYPE = "INTEGER"
    DATE_TYPE = "TEXT"
    TIMESTAMP_TYPE = "TEXT"

    REDUCTIONS = {
        "sum": "SUM",
        "mean": "AVG",
        "min": "MIN",
        "max": "MAX",
        "count": "COUNT",
    }

    def boolean(self, value: bool) -> str:
        return "1" if value else "0"

    def array_type(self, element_type: str) -> str:
        raise UnsupportedOperationError("Arrays are not supported by the sqlite dialect")

    def array(self, elements: list[str]) -> str:
        raise UnsupportedOperationError("Arrays are not supported by the sqlite dialect")

    def array_concat(self, left: str, right: str) -> str:
        raise UnsupportedOperationError("Arrays are not supported by the sqlite dialect")

    def array_length(self, arg: str) -> str:
        raise UnsupportedOperationError("Arrays are not supported by the sqlite dialect")

    def url_extract(self, part: str, arg: str, key: str | None) -> str:
        raise UnsupportedOperationError("URL functions are not supported by the sqlite dialect")

    def limit(self, n: int | None, offset: int) -> list[str]:
        # SQLite doesn't allow OFFSET without LIMIT
        if n is None and offset:
            n = -1
        return super().limit(n, offset)


DIALECTS = {
    dialect.name: dialect
    for dialect in (Dialect, DuckDBDialect, PostgresDialect, SQLiteDialect)
}


def get_dialect(name: str) -> Dialect:
    """Get the dialect with the given name, like ``"duckdb"``."""
    try:
        return DIALECTS[name.lower()]()
    except KeyError:
        raise UnsupportedOperationError(
            f"Unknown SQL dialect {name!r}, expected one of {sorted(DIALECTS)}"
        ) from None
