"""
Identifier, literal and dollar-quote helpers shared by every DDL generator.
"""

import re
from typing import Optional

# Keywords that can never appear as a bare identifier.
RESERVED_KEYWORDS = frozenset({
    "all", "analyse", "analyze", "and", "any", "array", "as", "asc",
    "asymmetric", "authorization", "binary", "both", "case", "cast", "check",
    "collate", "collation", "column", "concurrently", "constraint", "create",
    "cross", "current_catalog", "current_date", "current_role",
    "current_schema", "current_time", "current_timestamp", "current_user",
    "default", "deferrable", "desc", "distinct", "do", "else", "end",
    "except", "false", "fetch", "for", "foreign", "freeze", "from", "full",
    "grant", "group", "having", "ilike", "in", "initially", "inner",
    "intersect", "into", "is", "isnull", "join", "lateral", "leading", "left",
    "like", "limit", "localtime", "localtimestamp", "natural", "not",
    "notnull", "null", "offset", "on", "only", "or", "order", "outer",
    "overlaps", "placing", "primary", "references", "returning", "right",
    "select", "session_user", "similar", "some", "symmetric", "system_user",
    "table", "tablesample", "then", "to", "trailing", "true", "union",
    "unique", "user", "using", "variadic", "verbose", "when", "where",
    "window", "with",
})

# Tried in order once a body rules out the bare $$ delimiter.
DOLLAR_QUOTE_CANDIDATES = ["$_$", "$procedure$", "$body$", "$pgdump$"]
MAX_GENERATED_TAG = 1000
FALLBACK_DOLLAR_TAG = "$fallback$"

_SIMPLE_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_$]*$")
_PARAMETER_REFERENCE = re.compile(r"\$[0-9]")


def needs_quoting(identifier: str) -> bool:
    """Return True when an identifier must be double-quoted to survive case folding."""
    if not identifier:
        return False
    if identifier.lower() in RESERVED_KEYWORDS:
        return True
    return not _SIMPLE_IDENTIFIER.match(identifier)


def quote_identifier(identifier: str) -> str:
    if not needs_quoting(identifier):
        return identifier
    return '"' + identifier.replace('"', '""') + '"'


def qualify_entity_name(schema: Optional[str], name: str, target_schema: Optional[str]) -> str:
    """
    Render an object reference relative to the target schema.

    Objects living in the target schema are written bare; everything else
    carries its schema prefix.
    """
    if not schema or schema == target_schema:
        return quote_identifier(name)
    return f"{quote_identifier(schema)}.{quote_identifier(name)}"


def comment_schema_name(schema: Optional[str], target_schema: Optional[str]) -> str:
    """Schema shown in a statement header; '-' stands in for the target schema."""
    if target_schema and schema == target_schema:
        return "-"
    return schema or "-"


def strip_schema_prefix(reference: Optional[str], schema: Optional[str]) -> Optional[str]:
    """Drop a leading 'schema.' from a type, function or expression reference."""
    if not reference or not schema:
        return reference
    for prefix in (f"{schema}.", f'"{schema}".'):
        if reference.startswith(prefix):
            return reference[len(prefix):]
    return reference


def escape_literal(text: str) -> str:
    return text.replace("'", "''")


def quote_literal(text: str) -> str:
    return f"'{escape_literal(text)}'"


def dollar_quote_tag(body: str) -> str:
    """
    Choose a dollar-quote delimiter that does not occur inside the body.

    Bare $$ is used unless the body contains $$ itself or a positional
    parameter reference such as $1. After that the conventional tags are
    tried, then numbered tags, and finally a fixed sentinel.
    """
    if "$$" not in body and not _PARAMETER_REFERENCE.search(body):
        return "$$"

    for tag in DOLLAR_QUOTE_CANDIDATES:
        if tag not in body:
            return tag

    for i in range(1, MAX_GENERATED_TAG):
        tag = f"$tag{i}$"
        if tag not in body:
            return tag

    return FALLBACK_DOLLAR_TAG


def dollar_quote(body: str) -> str:
    tag = dollar_quote_tag(body)
    return f"{tag}{body}{tag}"


__all__ = [
    "RESERVED_KEYWORDS",
    "needs_quoting",
    "quote_identifier",
    "qualify_entity_name",
    "comment_schema_name",
    "strip_schema_prefix",
    "escape_literal",
    "quote_literal",
    "dollar_quote_tag",
    "dollar_quote",
]
