"""
Core library: the schema model, its producers and the DDL generators.
"""

from pg_schema_core.lib.ir import Catalog, Schema, Table
from pg_schema_core.lib.diff import SQLGenerator, generate_diff, generate_dump
from pg_schema_core.lib.ignore import IgnoreConfig, apply_ignore, load_ignore_config, load_ignore_file
from pg_schema_core.lib.parser import load_source, parse_sql_to_catalog
from pg_schema_core.lib.inspector import inspect_database
from pg_schema_core.lib.sorter import topological_sort
from pg_schema_core.lib.writer import SQLWriter

__all__ = [
    # Model
    "Catalog",
    "Schema",
    "Table",

    # Producers
    "parse_sql_to_catalog",
    "load_source",
    "inspect_database",

    # Generation
    "SQLGenerator",
    "SQLWriter",
    "generate_diff",
    "generate_dump",
    "topological_sort",

    # Ignore filter
    "IgnoreConfig",
    "apply_ignore",
    "load_ignore_config",
    "load_ignore_file",
]
