"""
Reads a live database's schema into a Catalog through pg_catalog queries.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import psycopg

from pg_schema_core.lib.ir import (
    Aggregate,
    Catalog,
    Column,
    Constraint,
    ConstraintColumn,
    ConstraintType,
    DomainConstraint,
    Extension,
    Function,
    Index,
    IndexAttachment,
    IndexType,
    PartitionAttachment,
    PolicyCommand,
    Procedure,
    RLSPolicy,
    Sequence,
    Table,
    TableType,
    Trigger,
    TriggerEvent,
    TriggerLevel,
    TriggerTiming,
    Type,
    TypeColumn,
    TypeKind,
    View,
)
from pg_schema_core.lib.parser import (
    DUMP_VERSION,
    FK_ACTIONS,
    TRIGGER_TYPE_BEFORE,
    TRIGGER_TYPE_DELETE,
    TRIGGER_TYPE_INSERT,
    TRIGGER_TYPE_INSTEAD,
    TRIGGER_TYPE_ROW,
    TRIGGER_TYPE_TRUNCATE,
    TRIGGER_TYPE_UPDATE,
)
from pg_schema_core.lib.type_util import normalize_type

USER_SCHEMA = "{column} NOT IN ('information_schema', 'pg_catalog', 'pg_toast') AND {column} !~ '^pg_'"

NOT_EXTENSION_MEMBER = (
    "NOT EXISTS (SELECT 1 FROM pg_depend dep WHERE dep.objid = {oid} AND dep.deptype = 'e')"
)

CONSTRAINT_TYPES = {
    "p": ConstraintType.PRIMARY_KEY,
    "u": ConstraintType.UNIQUE,
    "f": ConstraintType.FOREIGN_KEY,
    "c": ConstraintType.CHECK,
    "x": ConstraintType.EXCLUSION,
}

VOLATILITY = {
    "i": "IMMUTABLE",
    "s": "STABLE",
    "v": "VOLATILE",
}

TYPE_KINDS = {
    "e": TypeKind.ENUM,
    "c": TypeKind.COMPOSITE,
    "d": TypeKind.DOMAIN,
}

# Bounds a sequence gets when none are given
SEQUENCE_TYPE_MAX = {
    "smallint": 32767,
    "integer": 2147483647,
    "bigint": 9223372036854775807,
}

_TRIGGER_WHEN = re.compile(r"\sWHEN\s+\((.*)\)\s+EXECUTE\s+", re.DOTALL)
_PARTITION_KEY = re.compile(r"^(\w+)\s*\((.*)\)$", re.DOTALL)


def _schema_filter(column: str, schemas: Optional[List[str]]) -> Tuple[str, Optional[tuple]]:
    if not schemas:
        return "", None
    return f" AND {column} = ANY(%s)", (list(schemas),)


def _user_schema(column: str) -> str:
    return USER_SCHEMA.format(column=column)


def _yes(value: Any) -> bool:
    if isinstance(value, str):
        return value.upper() in ("YES", "TRUE", "T")
    return bool(value)


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def load_schemas(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, pg_get_userbyid(n.nspowner)
        FROM pg_namespace n
        WHERE {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname
    """, params)
    for name, owner in cur.fetchall():
        catalog.get_or_create_schema(name).owner = owner


def load_extensions(cur, catalog: Catalog) -> None:
    cur.execute("""
        SELECT e.extname, n.nspname, e.extversion, obj_description(e.oid, 'pg_extension')
        FROM pg_extension e
        JOIN pg_namespace n ON n.oid = e.extnamespace
        WHERE e.extname <> 'plpgsql'
        ORDER BY e.extname
    """)
    for name, schema, version, comment in cur.fetchall():
        catalog.extensions[name] = Extension(name=name, schema=schema, version=version, comment=comment)


def load_tables(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, c.relname, c.relkind, c.relpersistence,
               obj_description(c.oid, 'pg_class'), c.relrowsecurity,
               CASE WHEN c.relkind = 'p' THEN pg_get_partkeydef(c.oid) END
        FROM pg_class c
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE c.relkind IN ('r', 'p') AND {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname, c.relname
    """, params)
    for schema, name, relkind, persistence, comment, rls_enabled, partkey in cur.fetchall():
        table = Table(
            schema=schema,
            name=name,
            type=TableType.TEMPORARY if persistence == "t" else TableType.BASE_TABLE,
            comment=comment,
            rls_enabled=bool(rls_enabled),
        )
        if relkind == "p" and partkey:
            match = _PARTITION_KEY.match(partkey.strip())
            table.is_partitioned = True
            if match:
                table.partition_strategy = match.group(1).upper()
                table.partition_key = match.group(2)
        catalog.get_or_create_schema(schema).tables[name] = table


def load_columns(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("c.table_schema", schemas)
    cur.execute(f"""
        SELECT c.table_schema, c.table_name, c.column_name, c.ordinal_position,
               c.column_default, c.is_nullable, c.data_type, c.udt_schema, c.udt_name,
               c.character_maximum_length, c.numeric_precision, c.numeric_scale,
               col_description(cl.oid, c.ordinal_position::int),
               c.is_identity, c.identity_generation, c.identity_start, c.identity_increment,
               c.identity_maximum, c.identity_minimum, c.identity_cycle
        FROM information_schema.columns c
        JOIN pg_namespace n ON n.nspname = c.table_schema
        JOIN pg_class cl ON cl.relname = c.table_name AND cl.relnamespace = n.oid
        WHERE {_user_schema("c.table_schema")} {schema_filter}
        ORDER BY c.table_schema, c.table_name, c.ordinal_position
    """, params)
    for row in cur.fetchall():
        (schema, table_name, name, position, default, is_nullable, data_type, udt_schema, udt_name,
         max_length, precision, scale, comment, is_identity, identity_generation, identity_start,
         identity_increment, identity_maximum, identity_minimum, identity_cycle) = row

        table = catalog.find_table(schema, table_name)
        if table is None:
            continue

        if data_type == "ARRAY":
            data_type = normalize_type(udt_name)
        if data_type == "USER-DEFINED" and udt_schema and udt_schema != schema:
            udt_name = f"{udt_schema}.{udt_name}"

        column = Column(
            name=name,
            position=int(position),
            data_type=data_type,
            udt_name=udt_name,
            is_nullable=_yes(is_nullable),
            default=default,
            max_length=_int_or_none(max_length),
            precision=_int_or_none(precision) if data_type == "numeric" else None,
            scale=_int_or_none(scale) if data_type == "numeric" else None,
            comment=comment,
            is_identity=_yes(is_identity),
            identity_generation=identity_generation,
            identity_start=_int_or_none(identity_start),
            identity_increment=_int_or_none(identity_increment),
            identity_maximum=_int_or_none(identity_maximum),
            identity_minimum=_int_or_none(identity_minimum),
            identity_cycle=_yes(identity_cycle),
        )
        table.add_column(column)


def load_constraints(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, cl.relname, c.conname, c.contype,
               ARRAY(SELECT a.attname FROM unnest(c.conkey) WITH ORDINALITY AS k(attnum, ord)
                     JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = k.attnum
                     ORDER BY k.ord),
               fn.nspname, fcl.relname,
               ARRAY(SELECT a.attname FROM unnest(c.confkey) WITH ORDINALITY AS k(attnum, ord)
                     JOIN pg_attribute a ON a.attrelid = c.confrelid AND a.attnum = k.attnum
                     ORDER BY k.ord),
               CASE WHEN c.contype = 'c' THEN pg_get_constraintdef(c.oid, true) END,
               c.confupdtype, c.confdeltype, c.condeferrable, c.condeferred,
               obj_description(c.oid, 'pg_constraint')
        FROM pg_constraint c
        JOIN pg_class cl ON cl.oid = c.conrelid
        JOIN pg_namespace n ON n.oid = cl.relnamespace
        LEFT JOIN pg_class fcl ON fcl.oid = c.confrelid
        LEFT JOIN pg_namespace fn ON fn.oid = fcl.relnamespace
        WHERE c.contype IN ('p', 'u', 'f', 'c', 'x') AND c.conislocal
          AND {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname, cl.relname, c.conname
    """, params)
    for row in cur.fetchall():
        (schema, table_name, name, contype, columns, ref_schema, ref_table, ref_columns,
         check_clause, update_action, delete_action, deferrable, deferred, comment) = row

        table = catalog.find_table(schema, table_name)
        if table is None:
            continue

        constraint = Constraint(
            schema=schema,
            table=table_name,
            name=name,
            type=CONSTRAINT_TYPES[contype],
            columns=[ConstraintColumn(name=c, position=i + 1) for i, c in enumerate(columns or [])],
            check_clause=check_clause,
            deferrable=bool(deferrable),
            initially_deferred=bool(deferred),
            comment=comment,
        )
        if constraint.type == ConstraintType.FOREIGN_KEY:
            constraint.referenced_schema = ref_schema
            constraint.referenced_table = ref_table
            constraint.referenced_columns = [
                ConstraintColumn(name=c, position=i + 1) for i, c in enumerate(ref_columns or [])
            ]
            constraint.update_rule = FK_ACTIONS.get(update_action)
            constraint.delete_rule = FK_ACTIONS.get(delete_action)
        table.constraints[name] = constraint


def load_indexes(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    """Indexes created with CREATE INDEX; those backing constraints come with the constraint."""
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, t.relname, i.relname, idx.indisunique, idx.indisprimary,
               am.amname, pg_get_indexdef(idx.indexrelid),
               pg_get_expr(idx.indpred, idx.indrelid), obj_description(i.oid, 'pg_class')
        FROM pg_index idx
        JOIN pg_class i ON i.oid = idx.indexrelid
        JOIN pg_class t ON t.oid = idx.indrelid
        JOIN pg_namespace n ON n.oid = t.relnamespace
        JOIN pg_am am ON am.oid = i.relam
        WHERE NOT EXISTS (
                SELECT 1 FROM pg_constraint c
                WHERE c.conindid = idx.indexrelid AND c.contype IN ('p', 'u', 'x')
              )
          AND {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname, t.relname, i.relname
    """, params)
    for schema, table_name, name, is_unique, is_primary, method, definition, predicate, comment in cur.fetchall():
        table = catalog.find_table(schema, table_name)
        if table is None:
            continue
        table.indexes[name] = Index(
            schema=schema,
            table=table_name,
            name=name,
            type=IndexType.PRIMARY if is_primary else IndexType.UNIQUE if is_unique else IndexType.REGULAR,
            method=method,
            is_unique=bool(is_unique),
            is_primary=bool(is_primary),
            is_partial=predicate is not None,
            where=predicate,
            definition=definition,
            comment=comment,
        )


def _sequence_bound(value: Optional[int], default: Optional[int]) -> Optional[int]:
    if value is None or value == default:
        return None
    return value


def load_sequences(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, c.relname, format_type(s.seqtypid, NULL), s.seqstart, s.seqincrement,
               s.seqmin, s.seqmax, s.seqcycle, t.relname, a.attname,
               obj_description(c.oid, 'pg_class')
        FROM pg_sequence s
        JOIN pg_class c ON c.oid = s.seqrelid
        JOIN pg_namespace n ON n.oid = c.relnamespace
        LEFT JOIN pg_depend d ON d.objid = c.oid AND d.classid = 'pg_class'::regclass
             AND d.refclassid = 'pg_class'::regclass AND d.deptype IN ('a', 'i')
        LEFT JOIN pg_class t ON t.oid = d.refobjid
        LEFT JOIN pg_attribute a ON a.attrelid = d.refobjid AND a.attnum = d.refobjsubid
        WHERE {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname, c.relname
    """, params)
    for row in cur.fetchall():
        schema, name, data_type, start, increment, min_value, max_value, cycle, table, column, comment = row
        data_type = normalize_type(data_type)
        ascending = int(increment) > 0
        catalog.get_or_create_schema(schema).sequences[name] = Sequence(
            schema=schema,
            name=name,
            data_type=data_type,
            start_value=int(start),
            increment=int(increment),
            min_value=_sequence_bound(min_value, 1 if ascending else None),
            max_value=_sequence_bound(max_value, SEQUENCE_TYPE_MAX.get(data_type) if ascending else -1),
            cycle=bool(cycle),
            owned_by_table=table,
            owned_by_column=column,
            comment=comment,
        )


def load_views(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, c.relname, c.relkind = 'm', pg_get_viewdef(c.oid, true),
               obj_description(c.oid, 'pg_class')
        FROM pg_class c
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE c.relkind IN ('v', 'm') AND {_user_schema("n.nspname")}
          AND {NOT_EXTENSION_MEMBER.format(oid="c.oid")} {schema_filter}
        ORDER BY n.nspname, c.relname
    """, params)
    for schema, name, materialized, definition, comment in cur.fetchall():
        catalog.get_or_create_schema(schema).views[name] = View(
            schema=schema,
            name=name,
            definition=(definition or "").strip(),
            materialized=bool(materialized),
            comment=comment,
        )


def load_routines(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    """Functions and procedures; aggregates are loaded separately."""
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, p.proname, p.prokind, l.lanname,
               pg_get_function_identity_arguments(p.oid), pg_get_function_arguments(p.oid),
               pg_get_function_result(p.oid), p.prosrc, p.provolatile, p.proisstrict,
               p.prosecdef, obj_description(p.oid, 'pg_proc')
        FROM pg_proc p
        JOIN pg_namespace n ON n.oid = p.pronamespace
        JOIN pg_language l ON l.oid = p.prolang
        WHERE p.prokind IN ('f', 'p') AND {_user_schema("n.nspname")}
          AND {NOT_EXTENSION_MEMBER.format(oid="p.oid")} {schema_filter}
        ORDER BY n.nspname, p.proname, pg_get_function_identity_arguments(p.oid), p.oid
    """, params)
    for row in cur.fetchall():
        (schema, name, kind, language, arguments, signature, result, body,
         volatility, is_strict, is_security_definer, comment) = row
        owner = catalog.get_or_create_schema(schema)
        if kind == "p":
            if name in owner.procedures:
                logging.warning(f"Procedure {schema}.{name} is overloaded; keeping {owner.procedures[name].identity}")
                continue
            owner.procedures[name] = Procedure(
                schema=schema, name=name, definition=body, language=language,
                arguments=arguments, signature=signature, comment=comment,
            )
            continue
        if name in owner.functions:
            logging.warning(f"Function {schema}.{name} is overloaded; keeping {owner.functions[name].identity}")
            continue
        owner.functions[name] = Function(
            schema=schema,
            name=name,
            definition=body,
            language=language,
            arguments=arguments,
            signature=signature,
            return_type=result,
            volatility=VOLATILITY.get(volatility),
            is_strict=bool(is_strict),
            is_security_definer=bool(is_security_definer),
            comment=comment,
        )


def load_aggregates(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, p.proname, pg_get_function_identity_arguments(p.oid),
               pg_get_function_result(p.oid), sfn.proname, sfn_ns.nspname,
               format_type(a.aggtranstype, NULL), a.agginitval, ffn.proname, ffn_ns.nspname,
               obj_description(p.oid, 'pg_proc')
        FROM pg_aggregate a
        JOIN pg_proc p ON p.oid = a.aggfnoid
        JOIN pg_namespace n ON n.oid = p.pronamespace
        JOIN pg_proc sfn ON sfn.oid = a.aggtransfn
        JOIN pg_namespace sfn_ns ON sfn_ns.oid = sfn.pronamespace
        LEFT JOIN pg_proc ffn ON ffn.oid = a.aggfinalfn
        LEFT JOIN pg_namespace ffn_ns ON ffn_ns.oid = ffn.pronamespace
        WHERE {_user_schema("n.nspname")} AND {NOT_EXTENSION_MEMBER.format(oid="p.oid")} {schema_filter}
        ORDER BY n.nspname, p.proname, pg_get_function_identity_arguments(p.oid), p.oid
    """, params)
    for row in cur.fetchall():
        (schema, name, arguments, result, sfunc, sfunc_schema, state_type,
         initial_condition, ffunc, ffunc_schema, comment) = row
        owner = catalog.get_or_create_schema(schema)
        if name in owner.aggregates:
            logging.warning(f"Aggregate {schema}.{name} is overloaded; keeping {owner.aggregates[name].identity}")
            continue
        owner.aggregates[name] = Aggregate(
            schema=schema,
            name=name,
            arguments=arguments,
            return_type=result,
            transition_function=sfunc,
            # Support functions from pg_catalog never need qualifying
            transition_function_schema=None if sfunc_schema == "pg_catalog" else sfunc_schema,
            state_type=normalize_type(state_type),
            initial_condition=initial_condition,
            final_function=ffunc,
            final_function_schema=None if ffunc_schema == "pg_catalog" else ffunc_schema,
            comment=comment,
        )


def load_types(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    """Enums, composite types and domains, with their labels, members and constraints."""
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, t.typname, t.typtype, obj_description(t.oid, 'pg_type'),
               ARRAY(SELECT e.enumlabel FROM pg_enum e WHERE e.enumtypid = t.oid ORDER BY e.enumsortorder),
               CASE WHEN t.typtype = 'd' THEN format_type(t.typbasetype, t.typtypmod) END,
               t.typnotnull, t.typdefault
        FROM pg_type t
        JOIN pg_namespace n ON n.oid = t.typnamespace
        LEFT JOIN pg_class c ON c.oid = t.typrelid
        WHERE (t.typtype IN ('e', 'd') OR (t.typtype = 'c' AND c.relkind = 'c'))
          AND {_user_schema("n.nspname")} AND {NOT_EXTENSION_MEMBER.format(oid="t.oid")} {schema_filter}
        ORDER BY n.nspname, t.typname
    """, params)
    for schema, name, typtype, comment, labels, base_type, not_null, default in cur.fetchall():
        catalog.get_or_create_schema(schema).types[name] = Type(
            schema=schema,
            name=name,
            kind=TYPE_KINDS[typtype],
            enum_values=list(labels or []),
            base_type=base_type,
            not_null=bool(not_null),
            default=default,
            comment=comment,
        )

    cur.execute(f"""
        SELECT n.nspname, t.typname, a.attname, format_type(a.atttypid, a.atttypmod), a.attnum
        FROM pg_type t
        JOIN pg_namespace n ON n.oid = t.typnamespace
        JOIN pg_class c ON c.oid = t.typrelid AND c.relkind = 'c'
        JOIN pg_attribute a ON a.attrelid = t.typrelid
        WHERE a.attnum > 0 AND NOT a.attisdropped AND {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname, t.typname, a.attnum
    """, params)
    for schema, type_name, name, data_type, position in cur.fetchall():
        owner = catalog.schemas.get(schema)
        if owner is None or type_name not in owner.types:
            continue
        owner.types[type_name].columns.append(
            TypeColumn(name=name, data_type=normalize_type(data_type), position=int(position))
        )

    cur.execute(f"""
        SELECT n.nspname, t.typname, c.conname, pg_get_constraintdef(c.oid, true)
        FROM pg_constraint c
        JOIN pg_type t ON t.oid = c.contypid
        JOIN pg_namespace n ON n.oid = t.typnamespace
        WHERE {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname, t.typname, c.conname
    """, params)
    for schema, type_name, name, definition in cur.fetchall():
        owner = catalog.schemas.get(schema)
        if owner is None or type_name not in owner.types:
            continue
        owner.types[type_name].constraints.append(DomainConstraint(definition=definition, name=name))


def load_triggers(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("n.nspname", schemas)
    cur.execute(f"""
        SELECT n.nspname, c.relname, t.tgname, t.tgtype, fn_ns.nspname, p.proname,
               pg_get_triggerdef(t.oid, true), obj_description(t.oid, 'pg_trigger')
        FROM pg_trigger t
        JOIN pg_class c ON c.oid = t.tgrelid
        JOIN pg_namespace n ON n.oid = c.relnamespace
        JOIN pg_proc p ON p.oid = t.tgfoid
        JOIN pg_namespace fn_ns ON fn_ns.oid = p.pronamespace
        WHERE NOT t.tgisinternal AND t.tgparentid = 0 AND {_user_schema("n.nspname")} {schema_filter}
        ORDER BY n.nspname, c.relname, t.tgname
    """, params)
    for schema, table_name, name, tgtype, function_schema, function, definition, comment in cur.fetchall():
        table = catalog.find_table(schema, table_name)
        if table is None:
            continue

        if tgtype & TRIGGER_TYPE_INSTEAD:
            timing = TriggerTiming.INSTEAD_OF
        elif tgtype & TRIGGER_TYPE_BEFORE:
            timing = TriggerTiming.BEFORE
        else:
            timing = TriggerTiming.AFTER

        events = [
            event for bit, event in [
                (TRIGGER_TYPE_INSERT, TriggerEvent.INSERT),
                (TRIGGER_TYPE_UPDATE, TriggerEvent.UPDATE),
                (TRIGGER_TYPE_DELETE, TriggerEvent.DELETE),
                (TRIGGER_TYPE_TRUNCATE, TriggerEvent.TRUNCATE),
            ]
            if tgtype & bit
        ]

        match = _TRIGGER_WHEN.search(definition or "")
        table.triggers[name] = Trigger(
            schema=schema,
            table=table_name,
            name=name,
            timing=timing,
            events=events,
            level=TriggerLevel.ROW if tgtype & TRIGGER_TYPE_ROW else TriggerLevel.STATEMENT,
            function=f"{function_schema}.{function}" if function_schema != schema else function,
            condition=match.group(1) if match else None,
            comment=comment,
        )


def load_policies(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    schema_filter, params = _schema_filter("p.schemaname", schemas)
    cur.execute(f"""
        SELECT p.schemaname, p.tablename, p.policyname, p.permissive, p.roles, p.cmd,
               p.qual, p.with_check
        FROM pg_policies p
        WHERE {_user_schema("p.schemaname")} {schema_filter}
        ORDER BY p.schemaname, p.tablename, p.policyname
    """, params)
    for schema, table_name, name, permissive, roles, command, using, with_check in cur.fetchall():
        table = catalog.find_table(schema, table_name)
        if table is None:
            continue
        roles = [r for r in (roles or []) if r != "public"]
        table.policies[name] = RLSPolicy(
            schema=schema,
            table=table_name,
            name=name,
            command=PolicyCommand(command or "ALL"),
            permissive=(permissive or "PERMISSIVE").upper() == "PERMISSIVE",
            roles=roles,
            using=using,
            with_check=with_check,
        )


def load_partitions(cur, catalog: Catalog, schemas: Optional[List[str]] = None) -> None:
    """Partition-of relationships for tables and their indexes."""
    schema_filter, params = _schema_filter("cn.nspname", schemas)
    cur.execute(f"""
        SELECT pn.nspname, p.relname, cn.nspname, c.relname, c.relkind,
               pg_get_expr(c.relpartbound, c.oid)
        FROM pg_inherits i
        JOIN pg_class c ON c.oid = i.inhrelid
        JOIN pg_namespace cn ON cn.oid = c.relnamespace
        JOIN pg_class p ON p.oid = i.inhparent
        JOIN pg_namespace pn ON pn.oid = p.relnamespace
        WHERE c.relkind IN ('r', 'p', 'i', 'I') AND {_user_schema("cn.nspname")} {schema_filter}
        ORDER BY cn.nspname, c.relname
    """, params)
    for parent_schema, parent, child_schema, child, relkind, bound in cur.fetchall():
        if relkind in ("i", "I"):
            catalog.index_attachments.append(IndexAttachment(
                parent_schema=parent_schema,
                parent_index=parent,
                child_schema=child_schema,
                child_index=child,
            ))
        elif bound:
            catalog.partition_attachments.append(PartitionAttachment(
                parent_schema=parent_schema,
                parent_table=parent,
                child_schema=child_schema,
                child_table=child,
                partition_bound=bound,
            ))


def build_catalog(cur, schemas: Optional[List[str]] = None) -> Catalog:
    """Run every catalog query on an open cursor and assemble the result."""
    schemas = list(schemas) if schemas else None
    catalog = Catalog()

    cur.execute("SELECT current_setting('server_version')")
    row = cur.fetchone()
    catalog.metadata.database_version = row[0] if row else ""
    catalog.metadata.dumped_at = datetime.now(timezone.utc).isoformat()
    catalog.metadata.source = "database"
    catalog.metadata.dump_version = DUMP_VERSION

    load_schemas(cur, catalog, schemas)
    load_extensions(cur, catalog)
    load_tables(cur, catalog, schemas)
    load_columns(cur, catalog, schemas)
    load_constraints(cur, catalog, schemas)
    load_indexes(cur, catalog, schemas)
    load_sequences(cur, catalog, schemas)
    load_views(cur, catalog, schemas)
    load_routines(cur, catalog, schemas)
    load_aggregates(cur, catalog, schemas)
    load_types(cur, catalog, schemas)
    load_triggers(cur, catalog, schemas)
    load_policies(cur, catalog, schemas)
    load_partitions(cur, catalog, schemas)

    logging.info(f"Inspected {len(catalog.schemas)} schemas")
    return catalog


def inspect_database(conn_str: str, schemas: Optional[List[str]] = None) -> Catalog:
    """Connect to a live database and read its schema into a Catalog."""
    try:
        with psycopg.connect(conn_str) as conn:
            with conn.cursor() as cur:
                return build_catalog(cur, schemas)
    except psycopg.Error as e:
        raise ValueError(f"Failed to inspect database: {e}")


__all__ = [
    "build_catalog",
    "inspect_database",
]
