"""User defined functions.

Python functions can be turned into functions that
build expressions with the :func:`scalar` decorator::

    >>> import framequery as fq
    >>> @fq.udf.scalar("string")
    ... def size(mass):
    ...     if mass is None:
    ...         return None
    ...     return "big" if mass > 4000 else "small"
    >>> t = fq.memtable({"body_mass_g": [3750, 5000, None]})
    >>> t.select(size=size(t.body_mass_g)).to_pylist()
    [{'size': 'small'}, {'size': 'big'}, {'size': None}]

The function is invoked for each row, unless ``vectorized=True``
in which case it receives the whole :class:`pyarrow.Array` of each
argument and must return an array of the same length.
"""

import functools
from typing import Any, Callable

import pyarrow as pa

from . import datatypes
from .expr import operations as ops
from .expr.values import Column, to_op, wrap

__all__ = ("scalar",)


def scalar(
    output_type: str | pa.DataType,
    *,
    name: str | None = None,
    vectorized: bool = False,
) -> Callable[[Callable], Callable[..., Column]]:
    """Decorate a Python function to use it in expressions.

    :param output_type: The type of the values returned by the function.
    :param name: The name of the function, used for the column name
                 and when rendering SQL. Defaults to the name of the function.
    :param vectorized: If the function works on whole arrays instead of single values.
    """
    dtype = datatypes.dtype(output_type)

    def decorator(func: Callable) -> Callable[..., Column]:
        func_name = name or func.__name__

        @functools.wraps(func)
        def builder(*args: Any) -> Any:
            return wrap(
                ops.ScalarUDF(
                    func, [to_op(arg) for arg in args], dtype, func_name, vectorized=vectorized
                )
            )

        builder.func = func
        return builder

    return decorator
