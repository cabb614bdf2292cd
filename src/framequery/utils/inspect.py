"""Names of Python objects, used when printing query plans."""

import functools
import inspect
from typing import Any


def get_qualname(obj: Any) -> str:
    """Dotted name of ``obj``, including its module.

    Functions give ``module.function``, methods give
    ``module.Class.method``, partials are named after
    the function they wrap.

    >>> import pyarrow.compute as pc
    >>> get_qualname(pc.add)
    'pyarrow.compute.add'
    >>> class TestClass:
    ...   def method(self, arg):
    ...     pass
    >>> get_qualname(TestClass.method)
    'framequery.utils.inspect.TestClass.method'
    """
    if isinstance(obj, functools.partial):
        return get_qualname(obj.func)
    if inspect.ismodule(obj):
        return obj.__name__

    module = inspect.getmodule(obj)
    prefix = module.__name__ if module is not None else "<unknown>"
    if inspect.isclass(obj):
        return f"{prefix}.{obj.__name__}"
    if not (inspect.ismethod(obj) or inspect.isfunction(obj) or inspect.isbuiltin(obj)):
        return f"{prefix}.{type(obj).__name__}"

    bound_to = getattr(obj, "__self__", None)
    if bound_to is not None and not inspect.ismodule(bound_to):
        return f"{prefix}.{type(bound_to).__name__}.{obj.__name__}"
    return f"{prefix}.{obj.__qualname__}"
