"""
Command-line interface for pg-schema-core.
"""

from .cli import main

__all__ = ["main"]
