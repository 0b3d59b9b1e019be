"""
Canonical spellings for PostgreSQL built-in types.

Catalog queries and the parser report the same type under several names
(int4, integer, pg_catalog.int4). Everything is funnelled through
normalize_type so that generated DDL uses one spelling per type.
"""

import re
from typing import Optional

from pg_schema_core.lib.quote import strip_schema_prefix

TYPE_ALIASES = {
    # Numeric types
    "int2": "smallint",
    "int4": "integer",
    "int": "integer",
    "int8": "bigint",
    "float4": "real",
    "float8": "double precision",
    "bool": "boolean",
    "decimal": "numeric",

    # Character types
    "bpchar": "character",
    "char": "character",
    "varchar": "character varying",

    # Date/time types
    "timestamp with time zone": "timestamptz",
    "time with time zone": "timetz",
    "timestamp without time zone": "timestamp",
    "time without time zone": "time",

    # Serial pseudo-types keep the keyword spelling
    "serial": "SERIAL",
    "serial4": "SERIAL",
    "smallserial": "SMALLSERIAL",
    "serial2": "SMALLSERIAL",
    "bigserial": "BIGSERIAL",
    "serial8": "BIGSERIAL",
}

BUILTIN_TYPES = frozenset({
    "smallint", "integer", "bigint", "decimal", "numeric", "real",
    "double precision", "smallserial", "serial", "bigserial",
    "int2", "int4", "int8", "float4", "float8", "money",
    "character varying", "varchar", "character", "char", "text", "bpchar",
    "bytea", "timestamp", "timestamp without time zone",
    "timestamp with time zone", "date", "time", "time without time zone",
    "time with time zone", "interval", "timestamptz", "timetz",
    "boolean", "bool", "point", "line", "lseg", "box", "path", "polygon",
    "circle", "cidr", "inet", "macaddr", "macaddr8", "bit", "bit varying",
    "varbit", "tsvector", "tsquery", "uuid", "xml", "json", "jsonb",
    "int4range", "int8range", "numrange", "tsrange", "tstzrange", "daterange",
    "oid", "regclass", "regconfig", "regdictionary", "regnamespace",
    "regoper", "regoperator", "regproc", "regprocedure", "regrole",
    "regtype", "pg_lsn", "name", "void", "trigger", "record",
})

SERIAL_BASE_TYPES = {
    "smallint": "SMALLSERIAL",
    "int2": "SMALLSERIAL",
    "integer": "SERIAL",
    "int4": "SERIAL",
    "bigint": "BIGSERIAL",
    "int8": "BIGSERIAL",
}

_TYPE_QUALIFIER = re.compile(r"(.*)::[a-zA-Z_][a-zA-Z0-9_\s]*(\[\])?$", re.DOTALL)


def normalize_type(type_name: Optional[str]) -> Optional[str]:
    """
    Map an internal or alternate type spelling to its canonical form.

    'int4' -> 'integer', 'pg_catalog.bool' -> 'boolean', '_text' -> 'text[]'.
    Names with no known alias are returned unchanged apart from a dropped
    pg_catalog prefix.
    """
    if not type_name:
        return type_name

    name = type_name.strip()
    if name.startswith("pg_catalog."):
        name = name[len("pg_catalog."):]

    if name.endswith("[]"):
        return f"{normalize_type(name[:-2])}[]"

    # Internal array spelling: element name prefixed with an underscore
    if name.startswith("_") and len(name) > 1:
        element = name[1:]
        if element in TYPE_ALIASES or element in BUILTIN_TYPES:
            return f"{normalize_type(element)}[]"

    return TYPE_ALIASES.get(name, name)


def is_builtin_type(type_name: str) -> bool:
    return normalize_type(type_name).lower() in BUILTIN_TYPES or type_name.lower() in BUILTIN_TYPES


def is_serial_column(column) -> bool:
    """A column backed by an owned sequence: integer-family type with a nextval() default."""
    default = getattr(column, "default", None)
    if not default or "nextval(" not in default:
        return False
    return (column.data_type or "").lower() in SERIAL_BASE_TYPES


def serial_keyword(data_type: str) -> str:
    return SERIAL_BASE_TYPES.get((data_type or "").lower(), "SERIAL")


def strip_type_qualifiers(expression: Optional[str]) -> Optional[str]:
    """Remove a trailing '::type' cast from a default expression."""
    if not expression:
        return expression
    match = _TYPE_QUALIFIER.match(expression)
    if match:
        return match.group(1)
    return expression


def format_column_type(column, target_schema: Optional[str] = None) -> str:
    """
    Render a column's type for CREATE TABLE.

    SERIAL-family columns use the keyword form; length, precision and scale
    modifiers are appended where the type accepts them.
    """
    if is_serial_column(column):
        return serial_keyword(column.data_type)

    data_type = column.data_type
    if data_type == "USER-DEFINED" and column.udt_name:
        data_type = column.udt_name
    data_type = normalize_type(data_type)

    if column.max_length is not None and data_type == "character varying":
        return f"varchar({column.max_length})"
    if column.max_length is not None and data_type == "character":
        return f"character({column.max_length})"
    if data_type == "numeric" and column.precision is not None:
        if column.scale is not None:
            return f"numeric({column.precision},{column.scale})"
        return f"numeric({column.precision})"

    return strip_schema_prefix(data_type, target_schema)
