"""Data types of FrameQuery expressions.

FrameQuery doesn't have a type system of its own,
types are :class:`pyarrow.DataType` instances as the data
will always be processed in Arrow format by the compute engine.

This module provides the helpers to parse types from their names,
infer the type of Python literals and find a common type
for a set of values, which is what allows arrays to mix
literals and columns::

    array([t.bill_length_mm, 1])  # float64 column and int literal -> array<double>
"""

import datetime
import decimal
from typing import Any, Iterable

import pyarrow as pa

from .exceptions import TypeUnificationError

_ALIASES = {
    "int": pa.int64(),
    "integer": pa.int64(),
    "float": pa.float64(),
    "double": pa.float64(),
    "str": pa.string(),
    "string": pa.string(),
    "bool": pa.bool_(),
    "boolean": pa.bool_(),
    "date": pa.date32(),
    "time": pa.time64("us"),
    "timestamp": pa.timestamp("us"),
    "null": pa.null(),
}


def dtype(value: str | pa.DataType) -> pa.DataType:
    """Get the :class:`pyarrow.DataType` for a type or a type name.

    Accepts common names like ``"int64"``, ``"float"``, ``"string"``,
    any alias known to pyarrow and array types written as ``"array<int64>"``.

    >>> dtype("array<float>")
    ListType(list<item: double>)
    """
    if isinstance(value, pa.DataType):
        return value
    if not isinstance(value, str):
        raise TypeError(f"Invalid data type: {value!r}")

    name = value.strip().lower()
    if name.startswith("array<") and name.endswith(">"):
        return pa.list_(dtype(name[len("array<") : -1]))
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return pa.type_for_alias(name)
    except ValueError:
        raise TypeError(f"Unknown data type: {value!r}") from None


def infer(value: Any) -> pa.DataType:
    """Infer the data type of a Python literal.

    Integers are always considered ``int64`` and floats ``float64``,
    lists are inferred as the common type of their elements.
    """
    # bool must be checked before int as it's a subclass of it.
    if value is None:
        return pa.null()
    elif isinstance(value, bool):
        return pa.bool_()
    elif isinstance(value, int):
        return pa.int64()
    elif isinstance(value, float):
        return pa.float64()
    elif isinstance(value, str):
        return pa.string()
    elif isinstance(value, bytes):
        return pa.binary()
    elif isinstance(value, datetime.datetime):
        return pa.timestamp("us")
    elif isinstance(value, datetime.date):
        return pa.date32()
    elif isinstance(value, decimal.Decimal):
        return pa.float64()
    elif isinstance(value, (list, tuple)):
        return pa.list_(unify([infer(v) for v in value]))
    raise TypeError(f"Unable to infer the data type of {value!r}")


def is_numeric(t: pa.DataType) -> bool:
    """If the type holds numbers, integers or floating points."""
    return (
        pa.types.is_integer(t) or pa.types.is_floating(t) or pa.types.is_decimal(t)
    )


def is_string(t: pa.DataType) -> bool:
    return pa.types.is_string(t) or pa.types.is_large_string(t)


def is_array(t: pa.DataType) -> bool:
    return pa.types.is_list(t) or pa.types.is_large_list(t)


def unify(types: Iterable[pa.DataType]) -> pa.DataType:
    """Find the single type able to represent values of all the given types.

    The rules are intentionally simple:

    * ``null`` can be represented by any type, so it's ignored.
    * Integers are widened to the biggest integer, mixing signed
      and unsigned integers leads to ``int64``.
    * Integers and floating points lead to ``float64``,
      unless they are all ``float32``.
    * Strings unify with strings only.
    * Arrays unify when their elements unify.

    >>> unify([pa.int8(), pa.int32(), pa.null()])
    DataType(int32)
    >>> unify([pa.int64(), pa.float64()])
    DataType(double)

    Any other combination raises :class:`TypeUnificationError`.
    """
    types = [t for t in types if not pa.types.is_null(t)]
    if not types:
        return pa.null()

    first = types[0]
    if all(t.equals(first) for t in types):
        return first

    if all(pa.types.is_integer(t) for t in types):
        signed = [pa.types.is_signed_integer(t) for t in types]
        if all(signed) or not any(signed):
            return max(types, key=lambda t: t.bit_width)
        return pa.int64()

    if all(is_numeric(t) for t in types):
        if all(pa.types.is_float32(t) for t in types if not pa.types.is_integer(t)):
            # Small integers fit into a float32, bigger ones don't.
            if all(t.bit_width <= 16 for t in types if pa.types.is_integer(t)):
                return pa.float32()
        return pa.float64()

    if all(is_string(t) for t in types):
        return pa.string()

    if all(is_array(t) for t in types):
        return pa.list_(unify(t.value_type for t in types))

    names = ", ".join(str(t) for t in types)
    raise TypeUnificationError(f"Unable to find a common type for: {names}")
