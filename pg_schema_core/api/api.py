"""
Main FastAPI application for pg-schema-core.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .health import router as health_router
from .schema import router as schema_router
from .errors import not_found_handler, internal_error_handler

app = FastAPI(
    title="pg-schema-core API",
    description="Render PostgreSQL schemas as canonical DDL and compute additive diffs",
    version="0.3.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router, tags=["system"])
app.include_router(schema_router, tags=["schema"])

# Add error handlers
app.add_exception_handler(404, not_found_handler)
app.add_exception_handler(500, internal_error_handler)

# To run: uvicorn pg_schema_core.api:app --reload --host 0.0.0.0 --port 8000
