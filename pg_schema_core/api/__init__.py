"""
API module for pg-schema-core.
"""

from .models import DiffRequest, DumpRequest, HealthResponse
from .api import app

__all__ = [
    "DiffRequest",
    "DumpRequest",
    "HealthResponse",
    "app"
]
