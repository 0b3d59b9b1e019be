"""
Pydantic models for API requests and responses.
"""

from typing import Optional

from pydantic import BaseModel, Field


class DumpRequest(BaseModel):
    """Request model for rendering a schema."""
    sql: str = Field(..., description="DDL text describing the schema")
    target_schema: Optional[str] = Field(None, description="Only emit this schema, without qualification")
    include_comments: bool = Field(False, description="Include the dump header and per-object headers")


class DiffRequest(BaseModel):
    """Request model for an additive diff."""
    old_sql: str = Field(..., description="DDL text of the current schema")
    new_sql: str = Field(..., description="DDL text of the desired schema")
    target_schema: Optional[str] = Field(None, description="Only emit this schema, without qualification")
    include_comments: bool = Field(False, description="Include the dump header and per-object headers")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., examples=["healthy"])
    version: str = Field(..., examples=["0.3.0"])


class ErrorResponse(BaseModel):
    """Error response model."""
    detail: str = Field(..., examples=["Failed to parse SQL: syntax error at or near \"TABLEE\""])
