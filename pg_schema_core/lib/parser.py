"""
Builds a Catalog from DDL text using pglast.

Statements are handled in two passes: the first creates schemas, types,
tables, views, routines and sequences; the second attaches what hangs off
them (indexes, constraints added by ALTER TABLE, triggers, policies,
partition attachments and comments), so a file may declare an index
before the table it belongs to.
"""

import copy
import logging
import os
from typing import List, Optional, Tuple

from pglast import parse_sql
from pglast.enums import AlterTableType, ConstrType, ObjectType
from pglast.stream import RawStream

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
    IndexColumn,
    IndexType,
    Parameter,
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
from pg_schema_core.lib.ddl.table import normalize_index_expression
from pg_schema_core.lib.quote import quote_literal, strip_schema_prefix
from pg_schema_core.lib.type_util import is_builtin_type, normalize_type

DEFAULT_SCHEMA = "public"
DUMP_VERSION = "pg-schema 0.3.0"

SERIAL_TYPES = {
    "SERIAL": "integer",
    "SMALLSERIAL": "smallint",
    "BIGSERIAL": "bigint",
}

FK_ACTIONS = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

PARAMETER_MODES = {
    "i": "IN",
    "o": "OUT",
    "b": "INOUT",
    "v": "VARIADIC",
}

PARTITION_STRATEGIES = {
    "r": "RANGE",
    "l": "LIST",
    "h": "HASH",
}

# Bits of CreateTrigStmt.timing and events, and of pg_trigger.tgtype
TRIGGER_TYPE_ROW = 1 << 0
TRIGGER_TYPE_BEFORE = 1 << 1
TRIGGER_TYPE_INSERT = 1 << 2
TRIGGER_TYPE_DELETE = 1 << 3
TRIGGER_TYPE_UPDATE = 1 << 4
TRIGGER_TYPE_TRUNCATE = 1 << 5
TRIGGER_TYPE_INSTEAD = 1 << 6

SECOND_PASS = {"IndexStmt", "AlterTableStmt", "CreateTrigStmt", "CreatePolicyStmt", "CommentStmt"}


def _deparse(node) -> str:
    return RawStream()(node).strip()


def _default_text(node) -> str:
    """
    A column default as the catalog spells it: a cast literal keeps the
    'literal'::type form instead of CAST(... AS ...).
    """
    if type(node).__name__ == "TypeCast" and type(node.arg).__name__ == "A_Const":
        return f"{_deparse(node.arg)}::{_type_text(node.typeName)}"
    return _deparse(node)


def _sval(node) -> str:
    if hasattr(node, "sval"):
        return str(node.sval)
    return str(node)


def _names(nodes) -> List[str]:
    return [_sval(n) for n in nodes or []]


def _split_name(parts: List[str], default_schema: str) -> Tuple[str, str]:
    """('a', 'b') -> schema a, name b; a bare name lands in the default schema."""
    if len(parts) > 1:
        return parts[-2], parts[-1]
    return default_schema, parts[-1]


def _range_var(rel, default_schema: str) -> Tuple[str, str]:
    schema = getattr(rel, "schemaname", None) or default_schema
    return schema, rel.relname


def _enum_name(value) -> str:
    """Name of a pglast enum member, or the value itself for plain strings."""
    if hasattr(value, "name"):
        return value.name
    return str(value)


def _is(value, member) -> bool:
    return value == member or _enum_name(value) == member.name


def _int_arg(arg) -> Optional[int]:
    if arg is None:
        return None
    if hasattr(arg, "ival"):
        return int(arg.ival)
    if hasattr(arg, "fval"):
        return int(arg.fval)
    if hasattr(arg, "sval"):
        return int(arg.sval)
    return int(arg)


def _bool_arg(arg) -> bool:
    if arg is None:
        return True
    if hasattr(arg, "boolval"):
        return bool(arg.boolval)
    if hasattr(arg, "ival"):
        return bool(arg.ival)
    return bool(arg)


def _type_parts(type_node) -> Tuple[str, List[str], bool]:
    """
    Split a TypeName node into its canonical base name, its modifiers and
    whether it is an array.
    """
    names = _names(getattr(type_node, "names", None))
    if names and names[0] == "pg_catalog":
        names = names[1:]
    base = normalize_type(".".join(names)) if names else "unknown"

    modifiers = []
    for typmod in getattr(type_node, "typmods", None) or []:
        if hasattr(typmod, "val") and hasattr(typmod.val, "ival"):
            modifiers.append(str(typmod.val.ival))
        elif hasattr(typmod, "ival"):
            modifiers.append(str(typmod.ival))
        else:
            modifiers.append(_deparse(typmod))
    # Interval modifiers encode field masks, not lengths
    if base == "interval":
        modifiers = []

    is_array = bool(getattr(type_node, "arrayBounds", None))
    return base, modifiers, is_array


def _type_text(type_node) -> str:
    base, modifiers, is_array = _type_parts(type_node)
    text = base
    if modifiers:
        text += f"({','.join(modifiers)})"
    if is_array:
        text += "[]"
    if getattr(type_node, "setof", False):
        text = f"SETOF {text}"
    return text


def _def_arg_text(arg) -> str:
    """Render the argument of a DefElem option as plain text."""
    if arg is None:
        return ""
    if hasattr(arg, "names"):
        return ".".join(_names(arg.names))
    if isinstance(arg, (list, tuple)):
        return ".".join(_def_arg_text(a) for a in arg)
    if hasattr(arg, "sval"):
        return str(arg.sval)
    if hasattr(arg, "ival"):
        return str(arg.ival)
    if hasattr(arg, "fval"):
        return str(arg.fval)
    return _deparse(arg)


class _CatalogBuilder:
    def __init__(self, default_schema: str):
        self.default_schema = default_schema
        self.catalog = Catalog()
        self.catalog.metadata.source = "sql"
        self.catalog.metadata.dump_version = DUMP_VERSION

    def schema(self, name: str):
        return self.catalog.get_or_create_schema(name)

    def find_table(self, rel) -> Optional[Table]:
        schema, name = _range_var(rel, self.default_schema)
        table = self.catalog.find_table(schema, name)
        if table is None:
            logging.debug(f"Table {schema}.{name} not found, skipping dependent statement")
        return table

    def handle(self, node) -> None:
        typename = type(node).__name__
        handlers = {
            "CreateSchemaStmt": self.create_schema,
            "CreateExtensionStmt": self.create_extension,
            "CreateStmt": self.create_table,
            "ViewStmt": self.create_view,
            "CreateTableAsStmt": self.create_materialized_view,
            "CreateFunctionStmt": self.create_function,
            "DefineStmt": self.define,
            "CreateEnumStmt": self.create_enum,
            "CompositeTypeStmt": self.create_composite_type,
            "CreateDomainStmt": self.create_domain,
            "CreateSeqStmt": self.create_sequence,
            "IndexStmt": self.create_index,
            "AlterTableStmt": self.alter_table,
            "CreateTrigStmt": self.create_trigger,
            "CreatePolicyStmt": self.create_policy,
            "CommentStmt": self.comment,
        }
        handler = handlers.get(typename)
        if handler is None:
            logging.debug(f"Skipping unsupported statement {typename}")
            return
        handler(node)

    # First pass

    def create_schema(self, node):
        schema = self.schema(node.schemaname)
        authrole = getattr(node, "authrole", None)
        if authrole is not None and getattr(authrole, "rolename", None):
            schema.owner = authrole.rolename

    def create_extension(self, node):
        extension = Extension(name=node.extname)
        for option in getattr(node, "options", None) or []:
            if option.defname == "schema":
                extension.schema = _def_arg_text(option.arg)
            elif option.defname == "new_version":
                extension.version = _def_arg_text(option.arg)
        self.catalog.extensions[extension.name] = extension

    def create_table(self, node):
        schema_name, name = _range_var(node.relation, self.default_schema)
        table = Table(schema=schema_name, name=name)
        if getattr(node.relation, "relpersistence", "p") == "t":
            table.type = TableType.TEMPORARY

        position = 0
        for element in getattr(node, "tableElts", None) or []:
            kind = type(element).__name__
            if kind == "ColumnDef":
                position += 1
                self._column(table, element, position)
            elif kind == "Constraint":
                self._table_constraint(table, element)
            else:
                logging.debug(f"Skipping table element {kind} in {schema_name}.{name}")

        partspec = getattr(node, "partspec", None)
        if partspec is not None:
            table.is_partitioned = True
            strategy = _enum_name(partspec.strategy)
            strategy = strategy.replace("PARTITION_STRATEGY_", "")
            table.partition_strategy = PARTITION_STRATEGIES.get(strategy, strategy).upper()
            keys = []
            for elem in getattr(partspec, "partParams", None) or []:
                if getattr(elem, "name", None):
                    keys.append(elem.name)
                else:
                    keys.append(f"({_deparse(elem.expr)})")
            table.partition_key = ", ".join(keys)

        partbound = getattr(node, "partbound", None)
        parents = getattr(node, "inhRelations", None) or []
        if partbound is not None and parents:
            parent_schema, parent_name = _range_var(parents[0], self.default_schema)
            bound = _deparse(partbound)
            if not bound.upper().startswith(("FOR VALUES", "DEFAULT")):
                bound = f"FOR VALUES {bound}"
            self.catalog.partition_attachments.append(PartitionAttachment(
                parent_schema=parent_schema,
                parent_table=parent_name,
                child_schema=schema_name,
                child_table=name,
                partition_bound=bound,
            ))
        elif parents:
            logging.debug(f"Ignoring INHERITS clause on {schema_name}.{name}")

        self.schema(schema_name).tables[name] = table

    def _column(self, table: Table, element, position: int) -> None:
        base, modifiers, is_array = _type_parts(element.typeName)
        column = Column(name=element.colname, position=position, data_type=base)

        serial_base = SERIAL_TYPES.get(base)
        if serial_base and not is_array:
            column.data_type = serial_base
            sequence_name = f"{table.name}_{column.name}_seq"
            qualified = sequence_name
            if table.schema != self.default_schema:
                qualified = f"{table.schema}.{sequence_name}"
            column.default = f"nextval('{qualified}'::regclass)"
            column.is_nullable = False
            self.schema(table.schema).sequences[sequence_name] = Sequence(
                schema=table.schema,
                name=sequence_name,
                data_type=serial_base,
                owned_by_table=table.name,
                owned_by_column=column.name,
            )
        elif is_array:
            column.data_type = _type_text(element.typeName)
        elif base in ("character varying", "character") and modifiers:
            column.max_length = int(modifiers[0])
        elif base == "numeric" and modifiers:
            column.precision = int(modifiers[0])
            if len(modifiers) > 1:
                column.scale = int(modifiers[1])
        elif modifiers:
            column.data_type = f"{base}({','.join(modifiers)})"
        elif not is_builtin_type(base):
            column.data_type = "USER-DEFINED"
            column.udt_name = strip_schema_prefix(base, table.schema)

        table.add_column(column)

        if getattr(element, "is_not_null", False):
            column.is_nullable = False

        for constraint in getattr(element, "constraints", None) or []:
            contype = constraint.contype
            if _is(contype, ConstrType.CONSTR_NOTNULL):
                column.is_nullable = False
            elif _is(contype, ConstrType.CONSTR_NULL):
                column.is_nullable = True
            elif _is(contype, ConstrType.CONSTR_DEFAULT):
                column.default = _default_text(constraint.raw_expr)
            elif _is(contype, ConstrType.CONSTR_IDENTITY):
                self._identity(column, constraint)
            else:
                self._table_constraint(table, constraint, column_name=column.name)

    def _identity(self, column: Column, constraint) -> None:
        column.is_identity = True
        column.is_nullable = False
        column.identity_generation = "ALWAYS" if constraint.generated_when == "a" else "BY DEFAULT"
        for option in getattr(constraint, "options", None) or []:
            if option.defname == "start":
                column.identity_start = _int_arg(option.arg)
            elif option.defname == "increment":
                column.identity_increment = _int_arg(option.arg)
            elif option.defname == "maxvalue":
                column.identity_maximum = _int_arg(option.arg)
            elif option.defname == "minvalue":
                column.identity_minimum = _int_arg(option.arg)
            elif option.defname == "cycle":
                column.identity_cycle = _bool_arg(option.arg)

    def _constraint_name(self, table: Table, given: Optional[str], columns: List[str], suffix: str) -> str:
        if given:
            return given
        name = "_".join([table.name] + columns + [suffix])
        candidate = name
        counter = 0
        while candidate in table.constraints:
            counter += 1
            candidate = f"{name}{counter}"
        return candidate

    def _table_constraint(self, table: Table, node, column_name: Optional[str] = None) -> None:
        contype = node.contype
        conname = getattr(node, "conname", None)

        if _is(contype, ConstrType.CONSTR_PRIMARY):
            columns = [column_name] if column_name else _names(node.keys)
            constraint = Constraint(
                schema=table.schema, table=table.name,
                name=self._constraint_name(table, conname, [], "pkey"),
                type=ConstraintType.PRIMARY_KEY,
            )
        elif _is(contype, ConstrType.CONSTR_UNIQUE):
            columns = [column_name] if column_name else _names(node.keys)
            constraint = Constraint(
                schema=table.schema, table=table.name,
                name=self._constraint_name(table, conname, columns, "key"),
                type=ConstraintType.UNIQUE,
            )
        elif _is(contype, ConstrType.CONSTR_CHECK):
            columns = []
            constraint = Constraint(
                schema=table.schema, table=table.name,
                name=self._constraint_name(table, conname, [column_name] if column_name else [], "check"),
                type=ConstraintType.CHECK,
                check_clause=_deparse(node.raw_expr),
            )
        elif _is(contype, ConstrType.CONSTR_FOREIGN):
            columns = [column_name] if column_name else _names(node.fk_attrs)
            ref_schema, ref_table = _range_var(node.pktable, self.default_schema)
            constraint = Constraint(
                schema=table.schema, table=table.name,
                name=self._constraint_name(table, conname, columns[:1], "fkey"),
                type=ConstraintType.FOREIGN_KEY,
                referenced_schema=ref_schema,
                referenced_table=ref_table,
                referenced_columns=[
                    ConstraintColumn(name=c, position=i + 1) for i, c in enumerate(_names(node.pk_attrs))
                ],
                update_rule=FK_ACTIONS.get(getattr(node, "fk_upd_action", None) or "a", "NO ACTION"),
                delete_rule=FK_ACTIONS.get(getattr(node, "fk_del_action", None) or "a", "NO ACTION"),
                deferrable=bool(getattr(node, "deferrable", False)),
                initially_deferred=bool(getattr(node, "initdeferred", False)),
            )
        elif _is(contype, ConstrType.CONSTR_EXCLUSION):
            columns = []
            constraint = Constraint(
                schema=table.schema, table=table.name,
                name=self._constraint_name(table, conname, [], "excl"),
                type=ConstraintType.EXCLUSION,
            )
        else:
            logging.debug(f"Skipping constraint type {_enum_name(contype)} on {table.qualified_name}")
            return

        constraint.columns = [ConstraintColumn(name=c, position=i + 1) for i, c in enumerate(columns)]
        table.constraints[constraint.name] = constraint

        if constraint.type == ConstraintType.PRIMARY_KEY:
            for name in columns:
                column = table.get_column(name)
                if column is not None:
                    column.is_nullable = False

    def create_view(self, node):
        schema_name, name = _range_var(node.view, self.default_schema)
        self.schema(schema_name).views[name] = View(
            schema=schema_name, name=name, definition=_deparse(node.query),
        )

    def create_materialized_view(self, node):
        objtype = getattr(node, "objtype", None)
        if objtype is None or not _is(objtype, ObjectType.OBJECT_MATVIEW):
            logging.debug("Skipping CREATE TABLE AS")
            return
        schema_name, name = _range_var(node.into.rel, self.default_schema)
        self.schema(schema_name).views[name] = View(
            schema=schema_name, name=name, definition=_deparse(node.query), materialized=True,
        )

    def _parameters(self, node) -> Tuple[List[Parameter], List[str]]:
        """Function parameters, plus the TABLE(...) return columns."""
        parameters = []
        table_columns = []
        for param in getattr(node, "parameters", None) or []:
            mode = getattr(param, "mode", None)
            mode_value = getattr(mode, "value", mode)
            type_name = _type_text(param.argType)
            if mode_value == "t":
                table_columns.append(f"{param.name} {type_name}")
                continue
            defexpr = getattr(param, "defexpr", None)
            parameters.append(Parameter(
                name=getattr(param, "name", None),
                data_type=type_name,
                mode=PARAMETER_MODES.get(mode_value),
                default_value=_deparse(defexpr) if defexpr is not None else None,
                position=len(parameters) + 1,
            ))
        return parameters, table_columns

    @staticmethod
    def _identity_arguments(parameters: List[Parameter]) -> str:
        arguments = []
        for param in parameters:
            if param.mode == "OUT":
                continue
            if param.mode in ("INOUT", "VARIADIC"):
                arguments.append(f"{param.mode} {param.data_type}")
            else:
                arguments.append(param.data_type)
        return ", ".join(arguments)

    def create_function(self, node):
        schema_name, name = _split_name(_names(node.funcname), self.default_schema)
        parameters, table_columns = self._parameters(node)

        definition = ""
        language = None
        volatility = None
        is_strict = False
        is_security_definer = False
        for option in getattr(node, "options", None) or []:
            if option.defname == "as":
                definition = "\n".join(_sval(part) for part in option.arg)
            elif option.defname == "language":
                language = _def_arg_text(option.arg)
            elif option.defname == "volatility":
                volatility = _def_arg_text(option.arg).upper()
            elif option.defname == "strict":
                is_strict = _bool_arg(option.arg)
            elif option.defname == "security":
                is_security_definer = _bool_arg(option.arg)

        if not definition:
            logging.debug(f"Function {schema_name}.{name} has no string body")

        arguments = self._identity_arguments(parameters)
        signature = ", ".join(p.to_sql() for p in parameters)

        if getattr(node, "is_procedure", False):
            self.schema(schema_name).procedures[name] = Procedure(
                schema=schema_name,
                name=name,
                definition=definition,
                language=language or "plpgsql",
                arguments=arguments,
                signature=signature,
            )
            return

        if table_columns:
            return_type = f"TABLE({', '.join(table_columns)})"
        elif getattr(node, "returnType", None) is not None:
            return_type = _type_text(node.returnType)
        else:
            return_type = None

        self.schema(schema_name).functions[name] = Function(
            schema=schema_name,
            name=name,
            definition=definition,
            language=language or "sql",
            arguments=arguments,
            signature=signature,
            return_type=return_type,
            parameters=parameters,
            volatility=volatility,
            is_strict=is_strict,
            is_security_definer=is_security_definer,
        )

    def define(self, node):
        if not _is(node.kind, ObjectType.OBJECT_AGGREGATE):
            logging.debug(f"Skipping DefineStmt of kind {_enum_name(node.kind)}")
            return
        schema_name, name = _split_name(_names(node.defnames), self.default_schema)

        argument_types = []
        args = getattr(node, "args", None) or []
        if args and isinstance(args[0], (list, tuple)):
            argument_types = [_type_text(p.argType) for p in args[0]]

        aggregate = Aggregate(schema=schema_name, name=name)
        aggregate.arguments = ", ".join(argument_types)
        for option in getattr(node, "definition", None) or []:
            defname = option.defname.lower()
            if defname == "sfunc":
                fn_schema, fn_name = _split_name(_def_arg_text(option.arg).split("."), None)
                aggregate.transition_function = fn_name
                aggregate.transition_function_schema = fn_schema
            elif defname == "stype":
                aggregate.state_type = _type_text(option.arg) if hasattr(option.arg, "names") else _def_arg_text(option.arg)
            elif defname == "initcond":
                aggregate.initial_condition = _def_arg_text(option.arg)
            elif defname == "finalfunc":
                fn_schema, fn_name = _split_name(_def_arg_text(option.arg).split("."), None)
                aggregate.final_function = fn_name
                aggregate.final_function_schema = fn_schema
            elif defname == "basetype" and not argument_types:
                aggregate.arguments = normalize_type(_def_arg_text(option.arg))

        self.schema(schema_name).aggregates[name] = aggregate

    def create_enum(self, node):
        schema_name, name = _split_name(_names(node.typeName), self.default_schema)
        self.schema(schema_name).types[name] = Type(
            schema=schema_name, name=name, kind=TypeKind.ENUM, enum_values=_names(node.vals),
        )

    def create_composite_type(self, node):
        schema_name, name = _range_var(node.typevar, self.default_schema)
        columns = [
            TypeColumn(name=element.colname, data_type=_type_text(element.typeName), position=i + 1)
            for i, element in enumerate(getattr(node, "coldeflist", None) or [])
        ]
        self.schema(schema_name).types[name] = Type(
            schema=schema_name, name=name, kind=TypeKind.COMPOSITE, columns=columns,
        )

    def create_domain(self, node):
        schema_name, name = _split_name(_names(node.domainname), self.default_schema)
        domain = Type(
            schema=schema_name, name=name, kind=TypeKind.DOMAIN, base_type=_type_text(node.typeName),
        )
        for constraint in getattr(node, "constraints", None) or []:
            contype = constraint.contype
            if _is(contype, ConstrType.CONSTR_NOTNULL):
                domain.not_null = True
            elif _is(contype, ConstrType.CONSTR_DEFAULT):
                domain.default = _deparse(constraint.raw_expr)
            elif _is(contype, ConstrType.CONSTR_CHECK):
                domain.constraints.append(DomainConstraint(
                    definition=f"CHECK ({_deparse(constraint.raw_expr)})",
                    name=getattr(constraint, "conname", None),
                ))
        self.schema(schema_name).types[name] = domain

    def create_sequence(self, node):
        schema_name, name = _range_var(node.sequence, self.default_schema)
        sequence = Sequence(schema=schema_name, name=name)
        for option in getattr(node, "options", None) or []:
            if option.defname == "as":
                sequence.data_type = _type_text(option.arg)
            elif option.defname == "start":
                sequence.start_value = _int_arg(option.arg)
            elif option.defname == "increment":
                sequence.increment = _int_arg(option.arg)
            elif option.defname == "minvalue":
                sequence.min_value = _int_arg(option.arg)
            elif option.defname == "maxvalue":
                sequence.max_value = _int_arg(option.arg)
            elif option.defname == "cycle":
                sequence.cycle = _bool_arg(option.arg)
            elif option.defname == "owned_by":
                parts = _names(option.arg)
                if len(parts) >= 2:
                    sequence.owned_by_table = parts[-2]
                    sequence.owned_by_column = parts[-1]
        self.schema(schema_name).sequences[name] = sequence

    # Second pass

    def create_index(self, node):
        table = self.find_table(node.relation)
        if table is None:
            return

        columns = []
        for i, elem in enumerate(getattr(node, "indexParams", None) or []):
            if getattr(elem, "name", None):
                column_name = elem.name
            else:
                column_name = f"({normalize_index_expression(_deparse(elem.expr))})"
            ordering = _enum_name(getattr(elem, "ordering", ""))
            opclass = _names(getattr(elem, "opclass", None))
            columns.append(IndexColumn(
                name=column_name,
                position=i + 1,
                direction="DESC" if ordering == "SORTBY_DESC" else None,
                operator=".".join(opclass) or None,
            ))

        name = node.idxname or "_".join([table.name] + [c.name for c in columns if c.name.isidentifier()] + ["idx"])
        where = getattr(node, "whereClause", None)
        index = Index(
            schema=table.schema,
            table=table.name,
            name=name,
            type=IndexType.PRIMARY if node.primary else IndexType.UNIQUE if node.unique else IndexType.REGULAR,
            method=node.accessMethod or "btree",
            columns=columns,
            is_unique=bool(node.unique),
            is_primary=bool(node.primary),
            is_partial=where is not None,
            is_concurrent=bool(getattr(node, "concurrent", False)),
            where=_deparse(where) if where is not None else None,
        )
        table.indexes[name] = index

    def alter_table(self, node):
        objtype = getattr(node, "objtype", None)
        if objtype is not None and _is(objtype, ObjectType.OBJECT_INDEX):
            self._alter_index(node)
            return

        table = self.find_table(node.relation)
        if table is None:
            return

        for cmd in node.cmds or []:
            definition = getattr(cmd, "def_", None)
            if _is(cmd.subtype, AlterTableType.AT_AddConstraint):
                self._table_constraint(table, definition)
            elif _is(cmd.subtype, AlterTableType.AT_EnableRowSecurity):
                table.rls_enabled = True
            elif _is(cmd.subtype, AlterTableType.AT_DisableRowSecurity):
                table.rls_enabled = False
            elif _is(cmd.subtype, AlterTableType.AT_AttachPartition):
                child_schema, child_name = _range_var(definition.name, self.default_schema)
                self.catalog.partition_attachments.append(PartitionAttachment(
                    parent_schema=table.schema,
                    parent_table=table.name,
                    child_schema=child_schema,
                    child_table=child_name,
                    partition_bound=_deparse(definition.bound),
                ))
            else:
                logging.debug(f"Skipping ALTER TABLE {_enum_name(cmd.subtype)} on {table.qualified_name}")

    def _alter_index(self, node):
        parent_schema, parent_name = _range_var(node.relation, self.default_schema)
        for cmd in node.cmds or []:
            if not _is(cmd.subtype, AlterTableType.AT_AttachPartition):
                logging.debug(f"Skipping ALTER INDEX {_enum_name(cmd.subtype)} on {parent_schema}.{parent_name}")
                continue
            child_schema, child_name = _range_var(cmd.def_.name, self.default_schema)
            self.catalog.index_attachments.append(IndexAttachment(
                parent_schema=parent_schema,
                parent_index=parent_name,
                child_schema=child_schema,
                child_index=child_name,
            ))

    def create_trigger(self, node):
        table = self.find_table(node.relation)
        if table is None:
            return

        timing = node.timing or 0
        if timing & TRIGGER_TYPE_INSTEAD:
            trigger_timing = TriggerTiming.INSTEAD_OF
        elif timing & TRIGGER_TYPE_BEFORE:
            trigger_timing = TriggerTiming.BEFORE
        else:
            trigger_timing = TriggerTiming.AFTER

        events = []
        for bit, event in [
            (TRIGGER_TYPE_INSERT, TriggerEvent.INSERT),
            (TRIGGER_TYPE_UPDATE, TriggerEvent.UPDATE),
            (TRIGGER_TYPE_DELETE, TriggerEvent.DELETE),
            (TRIGGER_TYPE_TRUNCATE, TriggerEvent.TRUNCATE),
        ]:
            if node.events & bit:
                events.append(event)

        function = ".".join(_names(node.funcname))
        args = _names(getattr(node, "args", None))
        if args:
            function += f"({', '.join(quote_literal(a) for a in args)})"

        when = getattr(node, "whenClause", None)
        table.triggers[node.trigname] = Trigger(
            schema=table.schema,
            table=table.name,
            name=node.trigname,
            timing=trigger_timing,
            events=events,
            level=TriggerLevel.ROW if node.row else TriggerLevel.STATEMENT,
            function=function,
            condition=_deparse(when) if when is not None else None,
        )

    def create_policy(self, node):
        table = self.find_table(node.table)
        if table is None:
            return

        roles = []
        for role in getattr(node, "roles", None) or []:
            if getattr(role, "rolename", None):
                roles.append(role.rolename)
            else:
                roles.append(_enum_name(role.roletype).replace("ROLESPEC_", ""))
        # A bare policy applies to PUBLIC
        if roles == ["PUBLIC"]:
            roles = []

        qual = getattr(node, "qual", None)
        with_check = getattr(node, "with_check", None)
        table.policies[node.policy_name] = RLSPolicy(
            schema=table.schema,
            table=table.name,
            name=node.policy_name,
            command=PolicyCommand((node.cmd_name or "all").upper()),
            permissive=bool(node.permissive),
            roles=roles,
            using=_deparse(qual) if qual is not None else None,
            with_check=_deparse(with_check) if with_check is not None else None,
        )

    def comment(self, node):
        target = self._comment_target(node.objtype, node.object)
        if target is None:
            logging.debug(f"Skipping COMMENT ON {_enum_name(node.objtype)}")
            return
        target.comment = node.comment

    def _comment_target(self, objtype, obj):
        """Locate the object a COMMENT ON statement refers to."""
        kind = _enum_name(objtype).replace("OBJECT_", "")

        if kind == "EXTENSION":
            return self.catalog.extensions.get(_sval(obj))
        if kind in ("FUNCTION", "PROCEDURE", "AGGREGATE"):
            parts = _names(getattr(obj, "objname", None))
        elif kind in ("TYPE", "DOMAIN"):
            parts = _names(getattr(obj, "names", None))
        elif isinstance(obj, (list, tuple)):
            parts = _names(obj)
        else:
            return None
        if not parts:
            return None

        if kind == "COLUMN":
            schema_name, table_name = _split_name(parts[:-1], self.default_schema)
            table = self.catalog.find_table(schema_name, table_name)
            return table.get_column(parts[-1]) if table is not None else None

        if kind in ("TABCONSTRAINT", "TRIGGER"):
            schema_name, table_name = _split_name(parts[:-1], self.default_schema)
            table = self.catalog.find_table(schema_name, table_name)
            if table is None:
                return None
            owned = table.constraints if kind == "TABCONSTRAINT" else table.triggers
            return owned.get(parts[-1])

        schema_name, name = _split_name(parts, self.default_schema)
        schema = self.catalog.schemas.get(schema_name)
        if schema is None:
            return None
        if kind == "TABLE":
            return schema.tables.get(name)
        if kind in ("VIEW", "MATVIEW"):
            return schema.views.get(name)
        if kind == "SEQUENCE":
            return schema.sequences.get(name)
        if kind in ("TYPE", "DOMAIN"):
            return schema.types.get(name)
        if kind == "FUNCTION":
            return schema.functions.get(name)
        if kind == "PROCEDURE":
            return schema.procedures.get(name)
        if kind == "AGGREGATE":
            return schema.aggregates.get(name)
        if kind == "INDEX":
            for table in schema.tables.values():
                if name in table.indexes:
                    return table.indexes[name]
        return None

    def finish(self) -> Catalog:
        # Partitions declared with PARTITION OF inherit the parent's columns
        for attachment in self.catalog.partition_attachments:
            parent = self.catalog.find_table(attachment.parent_schema, attachment.parent_table)
            child = self.catalog.find_table(attachment.child_schema, attachment.child_table)
            if parent is not None and child is not None and not child.columns:
                child.columns = copy.deepcopy(parent.columns)
        return self.catalog


def parse_sql_to_catalog(sql: str, default_schema: str = DEFAULT_SCHEMA) -> Catalog:
    """
    Parse DDL text into a Catalog.

    Unqualified names land in `default_schema`. Statements that do not
    define schema objects (SET, SELECT, GRANT and so on) are skipped.
    """
    try:
        raw_stmts = parse_sql(sql)
    except Exception as e:
        raise ValueError(f"Failed to parse SQL: {str(e)}")

    builder = _CatalogBuilder(default_schema)
    deferred = []
    for raw_stmt in raw_stmts:
        node = raw_stmt.stmt
        if type(node).__name__ in SECOND_PASS:
            deferred.append(node)
        else:
            builder.handle(node)
    for node in deferred:
        builder.handle(node)

    catalog = builder.finish()
    logging.debug(f"Parsed {len(raw_stmts)} statements into {catalog}")
    return catalog


def _read_sql_files(directory: str) -> List[str]:
    all_sql = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for file in sorted(files):
            if file.endswith(".sql"):
                with open(os.path.join(root, file), "r") as f:
                    all_sql.append(f.read())
    return all_sql


def load_source(source: str, schemas: Optional[List[str]] = None,
                default_schema: str = DEFAULT_SCHEMA) -> Catalog:
    """
    Load a Catalog from a .sql file, a directory of .sql files, a saved
    .json catalog, a postgres:// connection string or raw DDL text.
    """
    if source.startswith(("postgres://", "postgresql://")):
        from pg_schema_core.lib.inspector import inspect_database
        return inspect_database(source, schemas=schemas)

    elif source.endswith(".json"):
        with open(source, "r") as f:
            return Catalog.from_json(f.read())

    elif source.endswith(".sql"):
        with open(source, "r") as f:
            sql = f.read()
        return parse_sql_to_catalog(sql, default_schema=default_schema)

    elif os.path.isdir(source):
        all_sql = _read_sql_files(source)
        if not all_sql:
            raise ValueError(f"No .sql files found in directory: {source}")
        return parse_sql_to_catalog("\n\n".join(all_sql), default_schema=default_schema)

    elif any(keyword in source.upper() for keyword in ["CREATE", "ALTER", "COMMENT"]):
        return parse_sql_to_catalog(source, default_schema=default_schema)

    else:
        raise ValueError(f"Source type not supported: {source}")


__all__ = [
    "DEFAULT_SCHEMA",
    "parse_sql_to_catalog",
    "load_source",
]
