"""
Schema rendering and diff endpoints.
"""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from pg_schema_core.api.models import DiffRequest, DumpRequest, ErrorResponse
from pg_schema_core.lib.diff import generate_diff, generate_dump
from pg_schema_core.lib.parser import parse_sql_to_catalog

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "The SQL could not be parsed"},
    500: {"model": ErrorResponse, "description": "Generation failed"},
}


@router.post("/dump", response_class=PlainTextResponse, responses={
    200: {
        "description": "Canonical DDL for the schema",
        "content": {
            "text/plain": {
                "example": "CREATE TABLE users (\n    id SERIAL PRIMARY KEY,\n    email text NOT NULL\n);\n"
            }
        }
    },
    **ERROR_RESPONSES,
})
async def dump(request: DumpRequest):
    """
    Parse DDL text and render it back as canonical, dependency-ordered DDL.
    """
    try:
        catalog = parse_sql_to_catalog(request.sql)
        sql = generate_dump(
            catalog,
            target_schema=request.target_schema,
            include_comments=request.include_comments,
        )
        return PlainTextResponse(sql)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logging.warning(f"Dump failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/diff", response_class=PlainTextResponse, responses={
    200: {
        "description": "DDL creating every object the new schema adds",
        "content": {
            "text/plain": {
                "example": "CREATE TABLE orders (\n    id SERIAL PRIMARY KEY\n);\n"
            }
        }
    },
    **ERROR_RESPONSES,
})
async def diff(request: DiffRequest):
    """
    Compare two schemas given as DDL text.

    Only additions are reported: objects present in new_sql and missing
    from old_sql, as CREATE statements in an order that applies cleanly.
    """
    try:
        old = parse_sql_to_catalog(request.old_sql)
        new = parse_sql_to_catalog(request.new_sql)
        sql = generate_diff(
            old,
            new,
            target_schema=request.target_schema,
            include_comments=request.include_comments,
        )
        return PlainTextResponse(sql)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logging.warning(f"Diff failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
