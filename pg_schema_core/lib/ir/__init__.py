from pg_schema_core.lib.ir.objects import (
    TRIGGER_EVENT_ORDER,
    ConstraintType,
    DomainConstraint,
    Extension,
    IndexType,
    IRObject,
    Metadata,
    PolicyCommand,
    Sequence,
    TableType,
    TriggerEvent,
    TriggerLevel,
    TriggerTiming,
    Type,
    TypeColumn,
    TypeKind,
    View,
)
from pg_schema_core.lib.ir.table import (
    Column,
    Constraint,
    ConstraintColumn,
    Index,
    IndexColumn,
    RLSPolicy,
    Table,
    Trigger,
)
from pg_schema_core.lib.ir.routine import Aggregate, Function, Parameter, Procedure
from pg_schema_core.lib.ir.catalog import Catalog, IndexAttachment, PartitionAttachment, Schema

__all__ = [
    "TRIGGER_EVENT_ORDER",
    "ConstraintType",
    "DomainConstraint",
    "Extension",
    "IndexType",
    "IRObject",
    "Metadata",
    "PolicyCommand",
    "Sequence",
    "TableType",
    "TriggerEvent",
    "TriggerLevel",
    "TriggerTiming",
    "Type",
    "TypeColumn",
    "TypeKind",
    "View",
    "Column",
    "Constraint",
    "ConstraintColumn",
    "Index",
    "IndexColumn",
    "RLSPolicy",
    "Table",
    "Trigger",
    "Aggregate",
    "Function",
    "Parameter",
    "Procedure",
    "Catalog",
    "IndexAttachment",
    "PartitionAttachment",
    "Schema",
]
