"""
DDL for functions, procedures and aggregates.
"""

from typing import Optional

from pg_schema_core.lib.ir import Aggregate, Function, Procedure
from pg_schema_core.lib.quote import dollar_quote, qualify_entity_name, quote_literal, strip_schema_prefix

DEFAULT_VOLATILITY = "VOLATILE"


def _parameter_list(signature: str, arguments: str) -> str:
    # The full signature carries parameter names and defaults; fall back to types only
    return signature or arguments or ""


def generate_function_sql(function: Function, target_schema: Optional[str] = None) -> str:
    """
    CREATE OR REPLACE FUNCTION for a function.

    Attributes follow the header one per line: RETURNS, LANGUAGE, then the
    non-default volatility, STRICT and SECURITY DEFINER in that order. The
    body is dollar-quoted with a tag that cannot clash with its contents.
    """
    if not function.name or not function.definition:
        return ""

    name = qualify_entity_name(function.schema, function.name, target_schema)
    lines = [f"CREATE OR REPLACE FUNCTION {name}({_parameter_list(function.signature, function.arguments)})"]
    if function.return_type:
        lines.append(f"RETURNS {strip_schema_prefix(function.return_type, target_schema)}")
    lines.append(f"LANGUAGE {function.language or 'sql'}")

    volatility = (function.volatility or DEFAULT_VOLATILITY).upper()
    if volatility != DEFAULT_VOLATILITY:
        lines.append(volatility)
    if function.is_strict:
        lines.append("STRICT")
    if function.is_security_definer:
        lines.append("SECURITY DEFINER")

    lines.append(f"AS {dollar_quote(function.definition)};")
    stmt = "\n".join(lines)

    if function.comment:
        stmt += f"\n\nCOMMENT ON FUNCTION {name}({function.arguments}) IS {quote_literal(function.comment)};"
    return stmt


def generate_procedure_sql(procedure: Procedure, target_schema: Optional[str] = None) -> str:
    if not procedure.name or not procedure.definition:
        return ""

    name = qualify_entity_name(procedure.schema, procedure.name, target_schema)
    stmt = "\n".join([
        f"CREATE OR REPLACE PROCEDURE {name}({_parameter_list(procedure.signature, procedure.arguments)})",
        f"LANGUAGE {procedure.language or 'plpgsql'}",
        f"AS {dollar_quote(procedure.definition)};",
    ])

    if procedure.comment:
        stmt += f"\n\nCOMMENT ON PROCEDURE {name}({procedure.arguments}) IS {quote_literal(procedure.comment)};"
    return stmt


def _support_function(name: str, schema: Optional[str], target_schema: Optional[str]) -> str:
    if schema and schema != target_schema:
        return f"{schema}.{name}"
    return name


def generate_aggregate_sql(aggregate: Aggregate, target_schema: Optional[str] = None) -> str:
    """
    CREATE AGGREGATE for an aggregate.

    SFUNC and STYPE are required; without them nothing is emitted.
    INITCOND is written whenever an initial condition is present, including
    an empty one.
    """
    if not aggregate.name or not aggregate.transition_function or not aggregate.state_type:
        return ""

    name = qualify_entity_name(aggregate.schema, aggregate.name, target_schema)
    arguments = _parameter_list(aggregate.signature, aggregate.arguments) or "*"

    options = [
        f"SFUNC = {_support_function(aggregate.transition_function, aggregate.transition_function_schema, target_schema)}",
        f"STYPE = {strip_schema_prefix(aggregate.state_type, target_schema)}",
    ]
    if aggregate.initial_condition is not None:
        options.append(f"INITCOND = {quote_literal(aggregate.initial_condition)}")
    if aggregate.final_function:
        options.append(
            f"FINALFUNC = {_support_function(aggregate.final_function, aggregate.final_function_schema, target_schema)}"
        )

    body = ",\n".join(f"    {option}" for option in options)
    stmt = f"CREATE AGGREGATE {name}({arguments}) (\n{body}\n);"

    if aggregate.comment:
        stmt += f"\n\nCOMMENT ON AGGREGATE {name}({aggregate.arguments or '*'}) IS {quote_literal(aggregate.comment)};"
    return stmt


__all__ = [
    "generate_function_sql",
    "generate_procedure_sql",
    "generate_aggregate_sql",
]
