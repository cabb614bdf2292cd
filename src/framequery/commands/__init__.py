"""Shell commands exposing FrameQuery functionalities.

This module contains the shell commands that can be used to interact with FrameQuery.

FrameQ (frame query)
====================

``frameq`` queries CSV and Parquet files::

    frameq -t penguins=penguins.csv penguins --columns species,body_mass_g --order-by body_mass_g:desc --limit 5

Adding ``--sql DIALECT`` prints the SQL of the query instead of running it::

    frameq -t penguins=penguins.csv penguins --columns species --limit 5 --sql duckdb

"""
