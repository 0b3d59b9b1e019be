"""
DDL for tables and the objects a table owns: constraints, indexes,
triggers and row-level-security policies.
"""

import re
from typing import List, Optional

from pg_schema_core.lib.ir import (
    TRIGGER_EVENT_ORDER,
    Column,
    Constraint,
    ConstraintType,
    Index,
    PolicyCommand,
    RLSPolicy,
    Table,
    Trigger,
)
from pg_schema_core.lib.quote import (
    qualify_entity_name,
    quote_identifier,
    quote_literal,
    strip_schema_prefix,
)
from pg_schema_core.lib.type_util import format_column_type, is_serial_column, strip_type_qualifiers

_EXPRESSION_INDEX = re.compile(
    r"CREATE\s+(UNIQUE\s+)?INDEX\s+(\w+)\s+ON\s+(?:(\w+)\.)?(\w+)\s+USING\s+(\w+)\s+"
    r"\((.+?)\)(?:\s+WHERE\s+(.+))?$"
)

INDENT = "    "


def wrap_parentheses(expression: str) -> str:
    """Wrap an expression in parentheses unless one pair already encloses all of it."""
    expression = expression.strip()
    if expression.startswith("(") and expression.endswith(")"):
        depth = 0
        for i, char in enumerate(expression):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0 and i < len(expression) - 1:
                    break
        else:
            return expression
    return f"({expression})"


def check_expression(clause: str) -> str:
    """Normalize a stored check clause to the 'CHECK (...)' form."""
    clause = clause.strip()
    if clause.upper().startswith("CHECK"):
        return clause
    return f"CHECK {wrap_parentheses(clause)}"


def _single_column_constraint(table: Table, column_name: str, constraint_type: ConstraintType) -> Optional[Constraint]:
    for name in sorted(table.constraints):
        constraint = table.constraints[name]
        if constraint.type != constraint_type or len(constraint.columns) != 1:
            continue
        if constraint.columns[0].name == column_name:
            return constraint
    return None


def _primary_key_columns(table: Table) -> List[str]:
    pk = table.primary_key()
    if pk is None:
        return []
    return [c.name for c in pk.columns]


def is_inline_constraint(table: Table, constraint: Constraint) -> bool:
    """
    True when the constraint is rendered inside CREATE TABLE.

    Single-column PRIMARY KEY and UNIQUE become column keywords and CHECK
    constraints trail the column list; everything else needs its own
    statement.
    """
    if constraint.type == ConstraintType.CHECK:
        return bool(constraint.check_clause)
    if constraint.type in (ConstraintType.PRIMARY_KEY, ConstraintType.UNIQUE):
        if len(constraint.columns) != 1:
            return False
        column_name = constraint.columns[0].name
        return _single_column_constraint(table, column_name, constraint.type) is constraint
    return False


def format_default(default: str, target_schema: Optional[str]) -> str:
    if target_schema:
        default = default.replace(f"nextval('{target_schema}.", "nextval('")
    return strip_type_qualifiers(default)


def generate_column_definition(column: Column, table: Table, target_schema: Optional[str] = None) -> str:
    parts = [quote_identifier(column.name), format_column_type(column, target_schema)]

    inline_pk = _single_column_constraint(table, column.name, ConstraintType.PRIMARY_KEY)
    if inline_pk is not None:
        parts.append("PRIMARY KEY")

    if column.is_identity:
        parts.append(f"GENERATED {column.identity_generation or 'BY DEFAULT'} AS IDENTITY")
    elif column.default is not None and not is_serial_column(column):
        parts.append(f"DEFAULT {format_default(column.default, target_schema)}")

    # Primary key columns are implicitly NOT NULL
    if not column.is_nullable and column.name not in _primary_key_columns(table):
        parts.append("NOT NULL")

    if _single_column_constraint(table, column.name, ConstraintType.UNIQUE) is not None:
        parts.append("UNIQUE")

    return " ".join(parts)


def generate_table_sql(table: Table, target_schema: Optional[str] = None) -> str:
    """
    CREATE TABLE for a table, followed by its COMMENT ON statements.

    Returns an empty string for a table without a name, or for one
    holding a column without a name or a type.
    """
    if not table.name:
        return ""
    if any(not c.name or not c.data_type for c in table.columns):
        return ""

    table_name = qualify_entity_name(table.schema, table.name, target_schema)
    lines = [generate_column_definition(c, table, target_schema) for c in table.sorted_columns()]

    for name in sorted(table.constraints):
        constraint = table.constraints[name]
        if constraint.type == ConstraintType.CHECK and constraint.check_clause:
            check = check_expression(constraint.check_clause)
            if constraint.name:
                lines.append(f"CONSTRAINT {quote_identifier(constraint.name)} {check}")
            else:
                lines.append(check)

    if lines:
        body = ",\n".join(f"{INDENT}{line}" for line in lines)
        stmt = f"CREATE TABLE {table_name} (\n{body}\n)"
    else:
        stmt = f"CREATE TABLE {table_name} ()"

    if table.is_partitioned and table.partition_strategy and table.partition_key:
        stmt += f"\nPARTITION BY {table.partition_strategy.upper()} ({table.partition_key})"
    stmt += ";"

    statements = [stmt]
    if table.comment:
        statements.append(f"COMMENT ON TABLE {table_name} IS {quote_literal(table.comment)};")
    for column in table.sorted_columns():
        if column.comment:
            statements.append(
                f"COMMENT ON COLUMN {table_name}.{quote_identifier(column.name)} IS {quote_literal(column.comment)};"
            )
    return "\n\n".join(statements)


def _has_unnamed(columns) -> bool:
    return any(not c.name for c in columns)


def _column_list(columns) -> str:
    return ", ".join(quote_identifier(c.name) for c in columns)


def generate_constraint_clause(constraint: Constraint, target_schema: Optional[str] = None) -> str:
    """
    The constraint body without the leading 'CONSTRAINT name'.

    Exclusion constraints are carried in the model but have no rendering;
    they produce an empty string.
    """
    if _has_unnamed(constraint.columns) or _has_unnamed(constraint.referenced_columns):
        return ""

    if constraint.type == ConstraintType.PRIMARY_KEY:
        if not constraint.columns:
            return ""
        return f"PRIMARY KEY ({_column_list(constraint.sorted_columns())})"

    if constraint.type == ConstraintType.UNIQUE:
        if not constraint.columns:
            return ""
        return f"UNIQUE ({_column_list(constraint.sorted_columns())})"

    if constraint.type == ConstraintType.FOREIGN_KEY:
        if not constraint.columns or not constraint.referenced_table:
            return ""
        referenced = qualify_entity_name(
            constraint.referenced_schema or constraint.schema,
            constraint.referenced_table,
            target_schema,
        )
        clause = f"FOREIGN KEY ({_column_list(constraint.sorted_columns())}) REFERENCES {referenced}"
        if constraint.referenced_columns:
            clause += f" ({_column_list(constraint.sorted_referenced_columns())})"
        if constraint.update_rule and constraint.update_rule != "NO ACTION":
            clause += f" ON UPDATE {constraint.update_rule}"
        if constraint.delete_rule and constraint.delete_rule != "NO ACTION":
            clause += f" ON DELETE {constraint.delete_rule}"
        if constraint.deferrable:
            clause += " DEFERRABLE"
            if constraint.initially_deferred:
                clause += " INITIALLY DEFERRED"
        return clause

    if constraint.type == ConstraintType.CHECK:
        if not constraint.check_clause:
            return ""
        return check_expression(constraint.check_clause)

    return ""


def generate_constraint_sql(constraint: Constraint, target_schema: Optional[str] = None) -> str:
    """ALTER TABLE ... ADD CONSTRAINT for constraints that are not inlined in CREATE TABLE."""
    clause = generate_constraint_clause(constraint, target_schema)
    if not clause or not constraint.name or not constraint.table:
        return ""
    table_name = qualify_entity_name(constraint.schema, constraint.table, target_schema)
    stmt = f"ALTER TABLE {table_name} ADD CONSTRAINT {quote_identifier(constraint.name)} {clause};"
    if constraint.comment:
        stmt += (
            f"\n\nCOMMENT ON CONSTRAINT {quote_identifier(constraint.name)} ON {table_name} "
            f"IS {quote_literal(constraint.comment)};"
        )
    return stmt


def _is_expression(text: str) -> bool:
    return "(" in text or "::" in text or "->" in text


def normalize_index_expression(expression: str) -> str:
    """Drop text casts and the spaces around JSON field access operators."""
    expression = expression.replace("::text", "")
    return expression.replace(" ->> ", "->>").replace(" -> ", "->")


def simplify_expression_index(definition: str) -> str:
    """
    Canonicalize the text of an expression index definition.

    Casts to text are dropped and JSON field access operators lose their
    surrounding spaces. Definitions that do not match the expected shape,
    or that index plain columns, come back unchanged.
    """
    match = _EXPRESSION_INDEX.match(definition.strip().rstrip(";"))
    if not match:
        return definition

    unique, name, schema, table, method, expression, where = match.groups()
    if not _is_expression(expression):
        return definition

    expression = normalize_index_expression(expression)

    table_ref = f"{schema}.{table}" if schema else table
    sql = f"CREATE {'UNIQUE ' if unique else ''}INDEX {name} ON {table_ref}"
    if method != "btree":
        sql += f" USING {method}"
    sql += f" ({expression})"
    if where:
        sql += f" WHERE {where}"
    return sql


def _index_from_columns(index: Index, target_schema: Optional[str]) -> str:
    if not index.columns or _has_unnamed(index.columns):
        return ""
    columns = []
    for column in index.sorted_columns():
        part = column.name if _is_expression(column.name) else quote_identifier(column.name)
        if column.operator:
            part += f" {column.operator}"
        if column.direction and column.direction.upper() == "DESC":
            part += " DESC"
        columns.append(part)

    sql = "CREATE "
    if index.is_unique:
        sql += "UNIQUE "
    sql += "INDEX "
    if index.is_concurrent:
        sql += "CONCURRENTLY "
    sql += f"{quote_identifier(index.name)} ON {qualify_entity_name(index.schema, index.table, target_schema)}"
    if index.method and index.method != "btree":
        sql += f" USING {index.method}"
    sql += f" ({', '.join(columns)})"
    if index.is_partial and index.where:
        sql += f" WHERE {index.where}"
    return sql


def generate_index_sql(index: Index, target_schema: Optional[str] = None) -> str:
    """
    CREATE INDEX for an index.

    The stored definition is preferred when present; otherwise the
    statement is rebuilt from the index columns.
    """
    if not index.name:
        return ""

    if index.definition:
        sql = simplify_expression_index(index.definition.strip())
        if index.schema and index.schema == target_schema:
            sql = re.sub(rf"(?<![\w.]){re.escape(index.schema)}\.", "", sql)
        sql = sql.replace(" USING btree", "")
    else:
        sql = _index_from_columns(index, target_schema)
        if not sql:
            return ""

    if not sql.endswith(";"):
        sql += ";"

    if index.comment:
        index_name = qualify_entity_name(index.schema, index.name, target_schema)
        sql += f"\n\nCOMMENT ON INDEX {index_name} IS {quote_literal(index.comment)};"
    return sql


def generate_trigger_sql(trigger: Trigger, target_schema: Optional[str] = None) -> str:
    if not trigger.name or not trigger.table or not trigger.function or not trigger.events:
        return ""

    events = " OR ".join(e.value for e in TRIGGER_EVENT_ORDER if e in trigger.events)
    table_name = qualify_entity_name(trigger.schema, trigger.table, target_schema)
    function = strip_schema_prefix(trigger.function, target_schema)
    if not function.endswith(")"):
        function += "()"

    stmt = (
        f"CREATE TRIGGER {quote_identifier(trigger.name)} {trigger.timing.sql} {events} "
        f"ON {table_name} FOR EACH {trigger.level.value}"
    )
    if trigger.condition:
        stmt += f" WHEN {wrap_parentheses(trigger.condition)}"
    stmt += f" EXECUTE FUNCTION {function};"

    if trigger.comment:
        stmt += (
            f"\n\nCOMMENT ON TRIGGER {quote_identifier(trigger.name)} ON {table_name} "
            f"IS {quote_literal(trigger.comment)};"
        )
    return stmt


def generate_policy_sql(policy: RLSPolicy, target_schema: Optional[str] = None) -> str:
    if not policy.name or not policy.table:
        return ""

    table_name = qualify_entity_name(policy.schema, policy.table, target_schema)
    stmt = f"CREATE POLICY {quote_identifier(policy.name)} ON {table_name}"
    if not policy.permissive:
        stmt += " AS RESTRICTIVE"
    if policy.command != PolicyCommand.ALL:
        stmt += f" FOR {policy.command.value}"
    if policy.roles:
        stmt += f" TO {', '.join(policy.roles)}"
    if policy.using:
        stmt += f" USING {wrap_parentheses(policy.using)}"
    if policy.with_check:
        stmt += f" WITH CHECK {wrap_parentheses(policy.with_check)}"
    return stmt + ";"


def generate_rls_enable_sql(table: Table, target_schema: Optional[str] = None) -> str:
    if not table.rls_enabled:
        return ""
    return f"ALTER TABLE {qualify_entity_name(table.schema, table.name, target_schema)} ENABLE ROW LEVEL SECURITY;"


def generate_partition_attach_sql(parent: str, child: str, bound: Optional[str]) -> str:
    if not bound:
        return ""
    return f"ALTER TABLE {parent} ATTACH PARTITION {child} {bound};"


__all__ = [
    "wrap_parentheses",
    "check_expression",
    "is_inline_constraint",
    "format_default",
    "generate_column_definition",
    "generate_table_sql",
    "generate_constraint_clause",
    "generate_constraint_sql",
    "normalize_index_expression",
    "simplify_expression_index",
    "generate_index_sql",
    "generate_trigger_sql",
    "generate_policy_sql",
    "generate_rls_enable_sql",
    "generate_partition_attach_sql",
]
