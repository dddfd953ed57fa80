# ==============================
# Parameter Contracts
# ==============================
"""
Declared tool parameters and validated parameter values.

ParameterDef mirrors one entry of a tool's `parameters:` list in the tools
file. ParameterSchema is the ordered, name-unique collection of them.
ParamValues is what parse_params() produces for one invocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ==============================
# Enums
# ==============================
class ParameterType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ARRAY = "array"


# ==============================
# Declarations
# ==============================
class AuthServiceRef(BaseModel):
    """Identity claim that supplies a parameter value: claims[name][field]."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Auth service name as registered with the host.")
    field: str = Field(..., description="Claim field to read from the verified token.")


class ParameterDef(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(default="", description="Parameter name; also the query field it overlays.")
    type: ParameterType = Field(..., description="Declared value type.")
    description: str = Field(default="")
    required: bool = Field(default=True)
    default: Any = Field(default=None, description="Value used when the caller omits the parameter.")
    items: Optional["ParameterDef"] = Field(default=None, description="Element declaration for array parameters.")
    auth_services: List[AuthServiceRef] = Field(default_factory=list, alias="authServices")

    @model_validator(mode="after")
    def _array_needs_items(self) -> "ParameterDef":
        if self.type == ParameterType.ARRAY and self.items is None:
            raise ValueError(f"array parameter {self.name!r} must declare 'items'")
        if self.type != ParameterType.ARRAY and self.items is not None:
            raise ValueError(f"parameter {self.name!r} declares 'items' but is not an array")
        return self

    @property
    def from_auth(self) -> bool:
        return bool(self.auth_services)

    @property
    def has_default(self) -> bool:
        return self.default is not None


class ParameterSchema(BaseModel):
    """Ordered parameter declarations; names are unique."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    parameters: List[ParameterDef] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_list(cls, data: Any) -> Any:
        if data is None:
            return {"parameters": []}
        if isinstance(data, (list, tuple)):
            return {"parameters": list(data)}
        return data

    @model_validator(mode="after")
    def _unique_names(self) -> "ParameterSchema":
        seen = set()
        for p in self.parameters:
            if not p.name:
                raise ValueError("parameter name must not be empty")
            if p.name in seen:
                raise ValueError(f"duplicate parameter name: {p.name!r}")
            seen.add(p.name)
        return self

    def __iter__(self) -> Iterator[ParameterDef]:  # type: ignore[override]
        return iter(self.parameters)

    def __len__(self) -> int:
        return len(self.parameters)

    def names(self) -> List[str]:
        return [p.name for p in self.parameters]


# ==============================
# Validated Values
# ==============================
@dataclass(frozen=True)
class ParamValue:
    name: str
    value: Any


@dataclass(frozen=True)
class ParamValues:
    """Validated values for one invocation, in schema order."""

    values: Tuple[ParamValue, ...] = ()

    def __post_init__(self) -> None:
        names = [v.name for v in self.values]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate parameter values: {names}")

    @classmethod
    def from_pairs(cls, pairs: List[Tuple[str, Any]]) -> "ParamValues":
        return cls(values=tuple(ParamValue(name=n, value=v) for n, v in pairs))

    def as_map(self) -> Dict[str, Any]:
        return {v.name: v.value for v in self.values}

    def get(self, name: str, default: Any = None) -> Any:
        for v in self.values:
            if v.name == name:
                return v.value
        return default

    def __contains__(self, name: object) -> bool:
        return any(v.name == name for v in self.values)

    def __iter__(self) -> Iterator[ParamValue]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)
