from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pg_schema_core.lib.ir.objects import IRObject


@dataclass
class Parameter(IRObject):
    """Represents a function parameter."""
    name: Optional[str]
    data_type: str
    mode: Optional[str] = None  # IN, OUT, INOUT, VARIADIC
    default_value: Optional[str] = None
    position: int = 0

    def to_sql(self) -> str:
        parts = []
        if self.mode and self.mode != "IN":
            parts.append(self.mode)
        if self.name:
            parts.append(self.name)
        parts.append(self.data_type)
        sql = " ".join(parts)
        if self.default_value is not None:
            sql += f" DEFAULT {self.default_value}"
        return sql


@dataclass
class Function(IRObject):
    """
    A function definition.

    `arguments` is the types-only list used to identify an overload;
    `signature` is the full name-and-type parameter list used in CREATE.
    """
    schema: str
    name: str
    definition: str = ""
    language: str = "sql"
    arguments: str = ""
    signature: str = ""
    return_type: Optional[str] = None
    parameters: List[Parameter] = field(default_factory=list)
    volatility: Optional[str] = None  # IMMUTABLE, STABLE or VOLATILE
    is_strict: bool = False
    is_security_definer: bool = False
    comment: Optional[str] = None

    @property
    def identity(self) -> str:
        return f"{self.name}({self.arguments})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Function":
        data = dict(data)
        data["parameters"] = [Parameter.from_dict(p) for p in data.get("parameters") or []]
        return super().from_dict(data)


@dataclass
class Procedure(IRObject):
    schema: str
    name: str
    definition: str = ""
    language: str = "plpgsql"
    arguments: str = ""
    signature: str = ""
    comment: Optional[str] = None

    @property
    def identity(self) -> str:
        return f"{self.name}({self.arguments})"


@dataclass
class Aggregate(IRObject):
    """
    A user-defined aggregate.

    initial_condition is None when the aggregate has no INITCOND; an empty
    string is a valid, distinct initial state.
    """
    schema: str
    name: str
    arguments: str = ""
    signature: str = ""
    return_type: Optional[str] = None
    transition_function: Optional[str] = None
    transition_function_schema: Optional[str] = None
    state_type: Optional[str] = None
    initial_condition: Optional[str] = None
    final_function: Optional[str] = None
    final_function_schema: Optional[str] = None
    comment: Optional[str] = None

    @property
    def identity(self) -> str:
        return f"{self.name}({self.arguments})"


__all__ = [
    "Parameter",
    "Function",
    "Procedure",
    "Aggregate",
]
