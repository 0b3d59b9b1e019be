from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pg_schema_core.lib.ir.objects import (
    ConstraintType,
    IndexType,
    IRObject,
    PolicyCommand,
    TableType,
    TriggerEvent,
    TriggerLevel,
    TriggerTiming,
)


@dataclass
class Column(IRObject):
    name: str
    position: int
    data_type: str
    udt_name: Optional[str] = None
    is_nullable: bool = True
    default: Optional[str] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    comment: Optional[str] = None
    is_identity: bool = False
    identity_generation: Optional[str] = None  # ALWAYS or BY DEFAULT
    identity_start: Optional[int] = None
    identity_increment: Optional[int] = None
    identity_maximum: Optional[int] = None
    identity_minimum: Optional[int] = None
    identity_cycle: bool = False


@dataclass
class ConstraintColumn(IRObject):
    name: str
    position: int


@dataclass
class Constraint(IRObject):
    schema: str
    table: str
    name: str
    type: ConstraintType
    columns: List[ConstraintColumn] = field(default_factory=list)
    referenced_schema: Optional[str] = None
    referenced_table: Optional[str] = None
    referenced_columns: List[ConstraintColumn] = field(default_factory=list)
    check_clause: Optional[str] = None
    update_rule: Optional[str] = None
    delete_rule: Optional[str] = None
    deferrable: bool = False
    initially_deferred: bool = False
    comment: Optional[str] = None

    def __post_init__(self):
        self.type = ConstraintType(self.type)

    def sorted_columns(self) -> List[ConstraintColumn]:
        return sorted(self.columns, key=lambda c: c.position)

    def sorted_referenced_columns(self) -> List[ConstraintColumn]:
        return sorted(self.referenced_columns, key=lambda c: c.position)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Constraint":
        data = dict(data)
        data["columns"] = [ConstraintColumn.from_dict(c) for c in data.get("columns") or []]
        data["referenced_columns"] = [ConstraintColumn.from_dict(c) for c in data.get("referenced_columns") or []]
        return super().from_dict(data)


@dataclass
class IndexColumn(IRObject):
    name: str
    position: int
    direction: Optional[str] = None  # ASC or DESC
    operator: Optional[str] = None   # operator class


@dataclass
class Index(IRObject):
    schema: str
    table: str
    name: str
    type: IndexType = IndexType.REGULAR
    method: str = "btree"
    columns: List[IndexColumn] = field(default_factory=list)
    is_unique: bool = False
    is_primary: bool = False
    is_partial: bool = False
    is_concurrent: bool = False
    where: Optional[str] = None
    definition: Optional[str] = None
    comment: Optional[str] = None

    def __post_init__(self):
        self.type = IndexType(self.type)

    def sorted_columns(self) -> List[IndexColumn]:
        return sorted(self.columns, key=lambda c: c.position)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Index":
        data = dict(data)
        data["columns"] = [IndexColumn.from_dict(c) for c in data.get("columns") or []]
        return super().from_dict(data)


@dataclass
class Trigger(IRObject):
    schema: str
    table: str
    name: str
    timing: TriggerTiming = TriggerTiming.AFTER
    events: List[TriggerEvent] = field(default_factory=list)
    level: TriggerLevel = TriggerLevel.ROW
    function: str = ""
    condition: Optional[str] = None
    comment: Optional[str] = None

    def __post_init__(self):
        self.timing = TriggerTiming(self.timing)
        self.level = TriggerLevel(self.level)
        self.events = [TriggerEvent(e) for e in self.events]


@dataclass
class RLSPolicy(IRObject):
    schema: str
    table: str
    name: str
    command: PolicyCommand = PolicyCommand.ALL
    permissive: bool = True
    roles: List[str] = field(default_factory=list)
    using: Optional[str] = None
    with_check: Optional[str] = None

    def __post_init__(self):
        self.command = PolicyCommand(self.command)


@dataclass
class Table(IRObject):
    """
    A relation with its owned children.

    Constraints, indexes, triggers and policies are keyed by name; callers
    that emit them sort the keys rather than relying on insertion order.
    """
    schema: str
    name: str
    type: TableType = TableType.BASE_TABLE
    columns: List[Column] = field(default_factory=list)
    constraints: Dict[str, Constraint] = field(default_factory=dict)
    indexes: Dict[str, Index] = field(default_factory=dict)
    triggers: Dict[str, Trigger] = field(default_factory=dict)
    policies: Dict[str, RLSPolicy] = field(default_factory=dict)
    rls_enabled: bool = False
    dependencies: List[str] = field(default_factory=list)
    comment: Optional[str] = None
    is_partitioned: bool = False
    partition_strategy: Optional[str] = None  # RANGE, LIST or HASH
    partition_key: Optional[str] = None

    def __post_init__(self):
        self.type = TableType(self.type)

    def sorted_columns(self) -> List[Column]:
        return sorted(self.columns, key=lambda c: c.position)

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def add_column(self, column: Column) -> Column:
        self.columns.append(column)
        return column

    def foreign_keys(self) -> List[Constraint]:
        return [
            self.constraints[name]
            for name in sorted(self.constraints)
            if self.constraints[name].type == ConstraintType.FOREIGN_KEY
        ]

    def primary_key(self) -> Optional[Constraint]:
        for name in sorted(self.constraints):
            if self.constraints[name].type == ConstraintType.PRIMARY_KEY:
                return self.constraints[name]
        return None

    def __str__(self) -> str:
        return f"Table({self.qualified_name}, {len(self.columns)} columns)"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        data = dict(data)
        data["columns"] = [Column.from_dict(c) for c in data.get("columns") or []]
        data["constraints"] = {k: Constraint.from_dict(v) for k, v in (data.get("constraints") or {}).items()}
        data["indexes"] = {k: Index.from_dict(v) for k, v in (data.get("indexes") or {}).items()}
        data["triggers"] = {k: Trigger.from_dict(v) for k, v in (data.get("triggers") or {}).items()}
        data["policies"] = {k: RLSPolicy.from_dict(v) for k, v in (data.get("policies") or {}).items()}
        return super().from_dict(data)


__all__ = [
    "Column",
    "ConstraintColumn",
    "Constraint",
    "IndexColumn",
    "Index",
    "Trigger",
    "RLSPolicy",
    "Table",
]
