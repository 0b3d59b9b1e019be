"""
Additive diff between two catalog snapshots.

Walks the newer snapshot kind by kind, in an order that makes the
resulting script valid on first execution, and emits CREATE statements
for every object that has no same-name counterpart in the older one.
Nothing is ever dropped or altered.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Set

from pg_schema_core.lib.ddl import (
    generate_aggregate_sql,
    generate_constraint_sql,
    generate_extension_sql,
    generate_function_sql,
    generate_index_sql,
    generate_partition_attach_sql,
    generate_policy_sql,
    generate_procedure_sql,
    generate_rls_enable_sql,
    generate_schema_sql,
    generate_sequence_sql,
    generate_table_sql,
    generate_trigger_sql,
    generate_type_sql,
    generate_view_sql,
    is_inline_constraint,
)
from pg_schema_core.lib.ir import Catalog, Schema, Table, TableType, TypeKind
from pg_schema_core.lib.quote import qualify_entity_name
from pg_schema_core.lib.sorter import sort_tables, sort_views
from pg_schema_core.lib.writer import SQLWriter


class SQLGenerator:
    """
    Renders the creation DDL that takes `old` to `new`.

    With a target schema, only that schema is walked, its objects render
    unqualified and the schema itself is assumed to exist already.
    """

    def __init__(self, include_comments: bool = False, target_schema: Optional[str] = None):
        self.include_comments = include_comments
        self.target_schema = target_schema or None

    def generate_diff(self, old: Catalog, new: Catalog, writer: Optional[SQLWriter] = None) -> str:
        w = writer if writer is not None else SQLWriter(include_comments=self.include_comments)

        if self.include_comments:
            w.write_header(new.metadata)

        self._extensions(w, old, new)
        self._schemas(w, old, new)
        self._types(w, old, new)
        self._sequences(w, old, new)
        self._tables(w, old, new)
        self._views(w, old, new)
        self._functions(w, old, new)
        self._aggregates(w, old, new)
        self._procedures(w, old, new)

        return w.getvalue()

    def _emit(self, w: SQLWriter, object_type: str, name: str, schema: Optional[str], sql: str,
              owner: Optional[str] = None) -> bool:
        if not sql:
            logging.debug(f"Nothing to emit for {object_type} {name}")
            return False
        w.write_separator()
        w.write_statement(object_type, name, schema, owner, sql, self.target_schema)
        return True

    def _schema_pairs(self, old: Catalog, new: Catalog):
        """Yield (new_schema, old_schema_or_None) in name order, honouring the target schema."""
        for name in new.sorted_schema_names():
            if self.target_schema and name != self.target_schema:
                continue
            yield new.schemas[name], old.schemas.get(name)

    def _extensions(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        count = 0
        for name in new.sorted_extension_names():
            if name in old.extensions:
                continue
            extension = new.extensions[name]
            # Extensions are database-wide, so the target schema never hides one
            sql = generate_extension_sql(extension)
            if sql:
                w.write_separator()
                w.write_statement("EXTENSION", extension.name, extension.schema, None, sql, None)
                count += 1
        logging.debug(f"Emitted {count} extensions")

    def _schemas(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for name in new.sorted_schema_names():
            if name in old.schemas:
                continue
            if self.target_schema and name == self.target_schema:
                continue
            schema = new.schemas[name]
            self._emit(w, "SCHEMA", name, None, generate_schema_sql(schema), owner=schema.owner)

    def _types(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for schema, old_schema in self._schema_pairs(old, new):
            created = [
                schema.types[name] for name in schema.sorted_type_names()
                if old_schema is None or name not in old_schema.types
            ]
            # Domains may be built on enums or composites, so they go last
            created.sort(key=lambda t: (t.kind == TypeKind.DOMAIN, t.name))
            for type_ in created:
                object_type = "DOMAIN" if type_.is_domain else "TYPE"
                self._emit(w, object_type, type_.name, schema.name, generate_type_sql(type_, self.target_schema))

    def _sequences(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for schema, old_schema in self._schema_pairs(old, new):
            for name in schema.sorted_sequence_names():
                if old_schema is not None and name in old_schema.sequences:
                    continue
                sequence = schema.sequences[name]
                # Created implicitly by the owning SERIAL column
                if sequence.is_owned:
                    logging.debug(f"Skipping sequence {name} owned by {sequence.owned_by_table}.{sequence.owned_by_column}")
                    continue
                self._emit(w, "SEQUENCE", name, schema.name, generate_sequence_sql(sequence, self.target_schema))

    def _tables(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for schema, old_schema in self._schema_pairs(old, new):
            children: Dict[str, List[str]] = defaultdict(list)
            bounds: Dict[str, Optional[str]] = {}
            parents: Dict[str, str] = {}
            for attachment in new.partition_attachments:
                if attachment.parent_schema == schema.name and attachment.child_schema == schema.name:
                    children[attachment.parent_table].append(attachment.child_table)
                    bounds[attachment.child_table] = attachment.partition_bound
                    parents[attachment.child_table] = attachment.parent_table

            processed: Set[str] = set()
            for name in sort_tables(schema):
                if name in processed:
                    continue
                # Partitions are emitted together with their parent
                if parents.get(name) in schema.tables:
                    continue
                self._table_tree(w, schema, old_schema, new, name, children, bounds, processed)

            logging.debug(f"Processed {len(processed)} tables in schema {schema.name}")

    def _table_tree(self, w: SQLWriter, schema: Schema, old_schema: Optional[Schema], new: Catalog,
                    name: str, children: Dict[str, List[str]], bounds: Dict[str, Optional[str]],
                    processed: Set[str], parent: Optional[str] = None) -> None:
        """Emit a table and its owned objects, then its partitions right after it."""
        table = schema.tables.get(name)
        if table is None or name in processed:
            return
        processed.add(name)

        is_new = table.type != TableType.VIEW and (old_schema is None or name not in old_schema.tables)
        if is_new and self._emit(w, "TABLE", name, schema.name, generate_table_sql(table, self.target_schema)):
            if parent is not None:
                attach = generate_partition_attach_sql(
                    qualify_entity_name(schema.name, parent, self.target_schema),
                    qualify_entity_name(schema.name, name, self.target_schema),
                    bounds.get(name),
                )
                self._emit(w, "TABLE ATTACH", name, schema.name, attach)
            self._table_children(w, schema, table, new)

        for child in sorted(children.get(name, [])):
            self._table_tree(w, schema, old_schema, new, child, children, bounds, processed, parent=name)

    def _table_children(self, w: SQLWriter, schema: Schema, table: Table, new: Catalog) -> None:
        for index_name in sorted(table.indexes):
            index = table.indexes[index_name]
            # Primary key indexes come with the constraint
            if index.is_primary:
                continue
            self._emit(w, "INDEX", index_name, schema.name, generate_index_sql(index, self.target_schema))
            for attachment in new.index_attachments:
                if attachment.child_schema == schema.name and attachment.child_index == index_name:
                    parent_index = qualify_entity_name(attachment.parent_schema, attachment.parent_index, self.target_schema)
                    child_index = qualify_entity_name(attachment.child_schema, attachment.child_index, self.target_schema)
                    self._emit(w, "INDEX ATTACH", index_name, schema.name,
                               f"ALTER INDEX {parent_index} ATTACH PARTITION {child_index};")

        for constraint_name in sorted(table.constraints):
            constraint = table.constraints[constraint_name]
            if is_inline_constraint(table, constraint):
                continue
            self._emit(w, "CONSTRAINT", constraint_name, schema.name,
                       generate_constraint_sql(constraint, self.target_schema))

        for trigger_name in sorted(table.triggers):
            self._emit(w, "TRIGGER", trigger_name, schema.name,
                       generate_trigger_sql(table.triggers[trigger_name], self.target_schema))

        self._emit(w, "TABLE", table.name, schema.name, generate_rls_enable_sql(table, self.target_schema))

        for policy_name in sorted(table.policies):
            self._emit(w, "POLICY", policy_name, schema.name,
                       generate_policy_sql(table.policies[policy_name], self.target_schema))

    def _views(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for schema, old_schema in self._schema_pairs(old, new):
            for name in sort_views(schema):
                if old_schema is not None and name in old_schema.views:
                    continue
                view = schema.views[name]
                object_type = "MATERIALIZED VIEW" if view.materialized else "VIEW"
                self._emit(w, object_type, name, schema.name, generate_view_sql(view, self.target_schema))

    def _functions(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for schema, old_schema in self._schema_pairs(old, new):
            for name in schema.sorted_function_names():
                if old_schema is not None and name in old_schema.functions:
                    continue
                function = schema.functions[name]
                self._emit(w, "FUNCTION", function.identity, schema.name,
                           generate_function_sql(function, self.target_schema))

    def _aggregates(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for schema, old_schema in self._schema_pairs(old, new):
            for name in schema.sorted_aggregate_names():
                if old_schema is not None and name in old_schema.aggregates:
                    continue
                aggregate = schema.aggregates[name]
                self._emit(w, "AGGREGATE", aggregate.identity, schema.name,
                           generate_aggregate_sql(aggregate, self.target_schema))

    def _procedures(self, w: SQLWriter, old: Catalog, new: Catalog) -> None:
        for schema, old_schema in self._schema_pairs(old, new):
            for name in schema.sorted_procedure_names():
                if old_schema is not None and name in old_schema.procedures:
                    continue
                procedure = schema.procedures[name]
                self._emit(w, "PROCEDURE", procedure.identity, schema.name,
                           generate_procedure_sql(procedure, self.target_schema))


def generate_diff(old: Catalog, new: Catalog, target_schema: Optional[str] = None,
                  include_comments: bool = False) -> str:
    """Creation DDL for every object in `new` that `old` does not have."""
    return SQLGenerator(include_comments=include_comments, target_schema=target_schema).generate_diff(old, new)


def generate_dump(catalog: Catalog, target_schema: Optional[str] = None, include_comments: bool = False) -> str:
    """Creation DDL for a whole catalog."""
    return generate_diff(Catalog(), catalog, target_schema=target_schema, include_comments=include_comments)


__all__ = [
    "SQLGenerator",
    "generate_diff",
    "generate_dump",
]
