"""
Shared enums and the smaller schema objects of the in-memory representation.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class TableType(Enum):
    BASE_TABLE = "BASE_TABLE"
    VIEW = "VIEW"
    TEMPORARY = "TEMPORARY"


class ConstraintType(Enum):
    PRIMARY_KEY = "PRIMARY_KEY"
    UNIQUE = "UNIQUE"
    FOREIGN_KEY = "FOREIGN_KEY"
    CHECK = "CHECK"
    EXCLUSION = "EXCLUSION"


class IndexType(Enum):
    REGULAR = "REGULAR"
    PRIMARY = "PRIMARY"
    UNIQUE = "UNIQUE"


class TriggerTiming(Enum):
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    INSTEAD_OF = "INSTEAD_OF"

    @property
    def sql(self) -> str:
        return self.value.replace("_", " ")


class TriggerEvent(Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    TRUNCATE = "TRUNCATE"


# Events are always rendered in this order regardless of how they were declared.
TRIGGER_EVENT_ORDER = [TriggerEvent.INSERT, TriggerEvent.UPDATE, TriggerEvent.DELETE, TriggerEvent.TRUNCATE]


class TriggerLevel(Enum):
    ROW = "ROW"
    STATEMENT = "STATEMENT"


class TypeKind(Enum):
    ENUM = "ENUM"
    COMPOSITE = "COMPOSITE"
    DOMAIN = "DOMAIN"


class PolicyCommand(Enum):
    ALL = "ALL"
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, IRObject):
        return value.to_dict()
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


class IRObject:
    """
    Dictionary conversion shared by every dataclass in the representation.

    Enum-typed fields are coerced in __post_init__, so from_dict only has to
    handle nested objects, which subclasses do by overriding it.
    """

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _encode(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @property
    def qualified_name(self) -> str:
        schema = getattr(self, "schema", None)
        name = getattr(self, "name", "")
        if schema and name:
            return f"{schema}.{name}"
        return name or ""


@dataclass
class Metadata(IRObject):
    """Provenance of a catalog snapshot."""
    database_version: str = ""
    dump_version: str = ""
    dumped_at: Optional[str] = None
    source: Optional[str] = None


@dataclass
class View(IRObject):
    schema: str
    name: str
    definition: str = ""
    materialized: bool = False
    dependencies: List[str] = field(default_factory=list)
    comment: Optional[str] = None

    def __str__(self) -> str:
        return f"View({self.qualified_name})"


@dataclass
class Sequence(IRObject):
    schema: str
    name: str
    data_type: str = "bigint"
    start_value: int = 1
    increment: int = 1
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    cycle: bool = False
    owned_by_table: Optional[str] = None
    owned_by_column: Optional[str] = None
    comment: Optional[str] = None

    @property
    def is_owned(self) -> bool:
        """True for sequences created implicitly by a SERIAL column."""
        return bool(self.owned_by_table and self.owned_by_column)


@dataclass
class TypeColumn(IRObject):
    """A member of a composite type."""
    name: str
    data_type: str
    position: int = 0


@dataclass
class DomainConstraint(IRObject):
    definition: str
    name: Optional[str] = None


@dataclass
class Type(IRObject):
    """
    A user-defined type.

    Exactly one of the kind-specific groups is populated: enum_values for
    ENUM, columns for COMPOSITE, and base_type/not_null/default/constraints
    for DOMAIN.
    """
    schema: str
    name: str
    kind: TypeKind = TypeKind.ENUM
    enum_values: List[str] = field(default_factory=list)
    columns: List[TypeColumn] = field(default_factory=list)
    base_type: Optional[str] = None
    not_null: bool = False
    default: Optional[str] = None
    constraints: List[DomainConstraint] = field(default_factory=list)
    comment: Optional[str] = None

    def __post_init__(self):
        self.kind = TypeKind(self.kind)

    @property
    def is_domain(self) -> bool:
        return self.kind == TypeKind.DOMAIN

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Type":
        data = dict(data)
        data["columns"] = [TypeColumn.from_dict(c) for c in data.get("columns") or []]
        data["constraints"] = [DomainConstraint.from_dict(c) for c in data.get("constraints") or []]
        return super().from_dict(data)


@dataclass
class Extension(IRObject):
    name: str
    schema: Optional[str] = None
    version: Optional[str] = None
    comment: Optional[str] = None


__all__ = [
    "TableType",
    "ConstraintType",
    "IndexType",
    "TriggerTiming",
    "TriggerEvent",
    "TRIGGER_EVENT_ORDER",
    "TriggerLevel",
    "TypeKind",
    "PolicyCommand",
    "IRObject",
    "Metadata",
    "View",
    "Sequence",
    "TypeColumn",
    "DomainConstraint",
    "Type",
    "Extension",
]
