"""
One pure rendering function per schema object kind.

Every generator takes the object and the target schema and returns the
statement text, or an empty string when the object is too incomplete to
render.
"""

from pg_schema_core.lib.ddl.table import (
    generate_column_definition,
    generate_constraint_clause,
    generate_constraint_sql,
    generate_index_sql,
    generate_partition_attach_sql,
    generate_policy_sql,
    generate_rls_enable_sql,
    generate_table_sql,
    generate_trigger_sql,
    is_inline_constraint,
    simplify_expression_index,
)
from pg_schema_core.lib.ddl.routine import generate_aggregate_sql, generate_function_sql, generate_procedure_sql
from pg_schema_core.lib.ddl.objects import (
    generate_extension_sql,
    generate_schema_sql,
    generate_sequence_sql,
    generate_type_sql,
    generate_view_sql,
)

__all__ = [
    "generate_column_definition",
    "generate_constraint_clause",
    "generate_constraint_sql",
    "generate_index_sql",
    "generate_partition_attach_sql",
    "generate_policy_sql",
    "generate_rls_enable_sql",
    "generate_table_sql",
    "generate_trigger_sql",
    "is_inline_constraint",
    "simplify_expression_index",
    "generate_aggregate_sql",
    "generate_function_sql",
    "generate_procedure_sql",
    "generate_extension_sql",
    "generate_schema_sql",
    "generate_sequence_sql",
    "generate_type_sql",
    "generate_view_sql",
]
