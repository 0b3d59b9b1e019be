from typing import Optional

from pg_schema_core.lib.ir import Extension, Schema, Sequence, Type, TypeKind, View
from pg_schema_core.lib.quote import qualify_entity_name, quote_identifier, quote_literal, strip_schema_prefix
from pg_schema_core.lib.type_util import normalize_type

DEFAULT_SEQUENCE_TYPE = "bigint"


def generate_schema_sql(schema: Schema) -> str:
    # public exists in every database
    if not schema.name or schema.name == "public":
        return ""
    return f"CREATE SCHEMA {quote_identifier(schema.name)};"


def generate_extension_sql(extension: Extension) -> str:
    if not extension.name:
        return ""
    name = quote_identifier(extension.name)
    stmt = f"CREATE EXTENSION IF NOT EXISTS {name}"
    if extension.schema:
        stmt += f" WITH SCHEMA {quote_identifier(extension.schema)}"
    stmt += ";"
    if extension.comment:
        stmt += f"\n\nCOMMENT ON EXTENSION {name} IS {quote_literal(extension.comment)};"
    return stmt


def generate_type_sql(type_: Type, target_schema: Optional[str] = None) -> str:
    """
    CREATE TYPE for enums and composites, CREATE DOMAIN for domains.

    Enum labels and composite members go one per line; each domain
    constraint also gets its own line after the base type.
    """
    if not type_.name:
        return ""
    name = qualify_entity_name(type_.schema, type_.name, target_schema)

    if type_.kind == TypeKind.ENUM:
        if type_.enum_values:
            labels = ",\n".join(f"    {quote_literal(label)}" for label in type_.enum_values)
            stmt = f"CREATE TYPE {name} AS ENUM (\n{labels}\n);"
        else:
            stmt = f"CREATE TYPE {name} AS ENUM ();"
    elif type_.kind == TypeKind.COMPOSITE:
        if not type_.columns:
            return ""
        members = sorted(type_.columns, key=lambda c: c.position)
        body = ",\n".join(
            f"    {quote_identifier(m.name)} {strip_schema_prefix(normalize_type(m.data_type), target_schema)}"
            for m in members
        )
        stmt = f"CREATE TYPE {name} AS (\n{body}\n);"
    else:
        if not type_.base_type:
            return ""
        stmt = f"CREATE DOMAIN {name} AS {strip_schema_prefix(normalize_type(type_.base_type), target_schema)}"
        if type_.default:
            stmt += f" DEFAULT {type_.default}"
        if type_.not_null:
            stmt += " NOT NULL"
        for constraint in type_.constraints:
            if constraint.name:
                stmt += f"\n    CONSTRAINT {quote_identifier(constraint.name)} {constraint.definition}"
            else:
                stmt += f"\n    {constraint.definition}"
        stmt += ";"

    if type_.comment:
        keyword = "DOMAIN" if type_.is_domain else "TYPE"
        stmt += f"\n\nCOMMENT ON {keyword} {name} IS {quote_literal(type_.comment)};"
    return stmt


def generate_sequence_sql(sequence: Sequence, target_schema: Optional[str] = None) -> str:
    """
    CREATE SEQUENCE with explicit bounds.

    START WITH and INCREMENT BY are only written when set and different
    from 1; MINVALUE and MAXVALUE are always written, as NO MINVALUE /
    NO MAXVALUE when unset.
    """
    if not sequence.name:
        return ""
    name = qualify_entity_name(sequence.schema, sequence.name, target_schema)
    parts = [f"CREATE SEQUENCE {name}"]

    data_type = normalize_type(sequence.data_type or DEFAULT_SEQUENCE_TYPE)
    if data_type != DEFAULT_SEQUENCE_TYPE:
        parts.append(f"AS {data_type}")
    if sequence.start_value is not None and sequence.start_value != 1:
        parts.append(f"START WITH {sequence.start_value}")
    if sequence.increment is not None and sequence.increment != 1:
        parts.append(f"INCREMENT BY {sequence.increment}")
    parts.append(f"MINVALUE {sequence.min_value}" if sequence.min_value is not None else "NO MINVALUE")
    parts.append(f"MAXVALUE {sequence.max_value}" if sequence.max_value is not None else "NO MAXVALUE")
    if sequence.cycle:
        parts.append("CYCLE")

    stmt = " ".join(parts) + ";"
    if sequence.comment:
        stmt += f"\n\nCOMMENT ON SEQUENCE {name} IS {quote_literal(sequence.comment)};"
    return stmt


def generate_view_sql(view: View, target_schema: Optional[str] = None) -> str:
    """CREATE VIEW with the stored query replayed verbatim."""
    definition = (view.definition or "").strip()
    if not view.name or not definition:
        return ""
    name = qualify_entity_name(view.schema, view.name, target_schema)
    keyword = "MATERIALIZED VIEW" if view.materialized else "VIEW"

    stmt = f"CREATE {keyword} {name} AS\n{definition}"
    if not stmt.endswith(";"):
        stmt += ";"
    if view.comment:
        stmt += f"\n\nCOMMENT ON {keyword} {name} IS {quote_literal(view.comment)};"
    return stmt


__all__ = [
    "generate_schema_sql",
    "generate_extension_sql",
    "generate_type_sql",
    "generate_sequence_sql",
    "generate_view_sql",
]
