"""Helpers not tied to tables or query plans.

:mod:`~framequery.utils.tabulate` prints results as text tables,
:mod:`~framequery.utils.inspect` names the functions used by expressions.
"""

from . import inspect, tabulate

__all__ = ("inspect", "tabulate")
