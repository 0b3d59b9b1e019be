"""
Catalog and schema containers for one snapshot of a database schema.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pg_schema_core.lib.ir.objects import Extension, IRObject, Metadata, Sequence, Type, View
from pg_schema_core.lib.ir.routine import Aggregate, Function, Procedure
from pg_schema_core.lib.ir.table import RLSPolicy, Table


@dataclass
class PartitionAttachment(IRObject):
    parent_schema: str
    parent_table: str
    child_schema: str
    child_table: str
    partition_bound: Optional[str] = None


@dataclass
class IndexAttachment(IRObject):
    parent_schema: str
    parent_index: str
    child_schema: str
    child_index: str


@dataclass
class Schema(IRObject):
    """
    A namespace and the objects it owns.

    Indexes, triggers, constraints and row-level-security policies belong to
    their Table; `policies` here only holds policies handed over without a
    table in the same snapshot.
    """
    name: str
    owner: Optional[str] = None
    tables: Dict[str, Table] = field(default_factory=dict)
    views: Dict[str, View] = field(default_factory=dict)
    functions: Dict[str, Function] = field(default_factory=dict)
    procedures: Dict[str, Procedure] = field(default_factory=dict)
    aggregates: Dict[str, Aggregate] = field(default_factory=dict)
    sequences: Dict[str, Sequence] = field(default_factory=dict)
    policies: Dict[str, RLSPolicy] = field(default_factory=dict)
    types: Dict[str, Type] = field(default_factory=dict)

    def sorted_table_names(self) -> List[str]:
        return sorted(self.tables)

    def sorted_view_names(self) -> List[str]:
        return sorted(self.views)

    def sorted_function_names(self) -> List[str]:
        return sorted(self.functions)

    def sorted_procedure_names(self) -> List[str]:
        return sorted(self.procedures)

    def sorted_aggregate_names(self) -> List[str]:
        return sorted(self.aggregates)

    def sorted_sequence_names(self) -> List[str]:
        return sorted(self.sequences)

    def sorted_type_names(self) -> List[str]:
        return sorted(self.types)

    def is_empty(self) -> bool:
        return not any([
            self.tables, self.views, self.functions, self.procedures,
            self.aggregates, self.sequences, self.policies, self.types,
        ])

    def __str__(self) -> str:
        return f"Schema({self.name})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schema":
        return cls(
            name=data["name"],
            owner=data.get("owner"),
            tables={k: Table.from_dict(v) for k, v in (data.get("tables") or {}).items()},
            views={k: View.from_dict(v) for k, v in (data.get("views") or {}).items()},
            functions={k: Function.from_dict(v) for k, v in (data.get("functions") or {}).items()},
            procedures={k: Procedure.from_dict(v) for k, v in (data.get("procedures") or {}).items()},
            aggregates={k: Aggregate.from_dict(v) for k, v in (data.get("aggregates") or {}).items()},
            sequences={k: Sequence.from_dict(v) for k, v in (data.get("sequences") or {}).items()},
            policies={k: RLSPolicy.from_dict(v) for k, v in (data.get("policies") or {}).items()},
            types={k: Type.from_dict(v) for k, v in (data.get("types") or {}).items()},
        )


@dataclass
class Catalog(IRObject):
    """
    A complete schema snapshot as handed over by a producer.

    Generators treat a Catalog as read-only.
    """
    metadata: Metadata = field(default_factory=Metadata)
    schemas: Dict[str, Schema] = field(default_factory=dict)
    extensions: Dict[str, Extension] = field(default_factory=dict)
    partition_attachments: List[PartitionAttachment] = field(default_factory=list)
    index_attachments: List[IndexAttachment] = field(default_factory=list)

    def get_or_create_schema(self, name: str) -> Schema:
        if name not in self.schemas:
            self.schemas[name] = Schema(name=name)
        return self.schemas[name]

    def sorted_schema_names(self) -> List[str]:
        return sorted(self.schemas)

    def sorted_extension_names(self) -> List[str]:
        return sorted(self.extensions)

    def find_table(self, schema: str, name: str) -> Optional[Table]:
        owner = self.schemas.get(schema)
        if owner is None:
            return None
        return owner.tables.get(name)

    def __str__(self) -> str:
        return f"Catalog({', '.join(self.sorted_schema_names())})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Catalog":
        return cls(
            metadata=Metadata.from_dict(data.get("metadata") or {}),
            schemas={k: Schema.from_dict(v) for k, v in (data.get("schemas") or {}).items()},
            extensions={k: Extension.from_dict(v) for k, v in (data.get("extensions") or {}).items()},
            partition_attachments=[PartitionAttachment.from_dict(a) for a in data.get("partition_attachments") or []],
            index_attachments=[IndexAttachment.from_dict(a) for a in data.get("index_attachments") or []],
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> "Catalog":
        return cls.from_dict(json.loads(text))


__all__ = [
    "PartitionAttachment",
    "IndexAttachment",
    "Schema",
    "Catalog",
]
