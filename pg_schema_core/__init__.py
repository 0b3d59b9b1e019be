"""
pg-schema-core: canonical PostgreSQL schema model and DDL generation

This package reads schemas from SQL files or live database connections into
one in-memory model, renders that model back to deterministic DDL, and
computes additive migration scripts between two snapshots.
"""

# Import core library functionality
from pg_schema_core.lib import (
    Catalog,
    generate_diff,
    generate_dump,
    load_source,
)

# Import CLI and API interfaces
from pg_schema_core.cli import main
from pg_schema_core.api import app

__version__ = "0.3.0"
__all__ = [
    # Core library exports
    "Catalog",
    "generate_diff",
    "generate_dump",
    "load_source",

    # Interface exports
    "main",
    "app"
]
