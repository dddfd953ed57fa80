# ==============================
# Manifest Contracts
# ==============================
"""
Read-only projections of a tool's input contract.

- Manifest: human/client facing summary (description, parameters, auth).
- InvocationSchema: JSON-schema input shape for remote callers and agents.

Both are built once when a tool is bound and never reflect invocation state.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ParameterManifest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str
    type: str
    description: str = ""
    required: bool = True
    auth_sources: List[str] = Field(default_factory=list, alias="authSources")
    items: Optional["ParameterManifest"] = None


class Manifest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    description: str
    parameters: List[ParameterManifest] = Field(default_factory=list)
    auth_required: List[str] = Field(default_factory=list, alias="authRequired")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class InputSchema(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str = "object"
    properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)


class InvocationSchema(BaseModel):
    """Tool-call schema in the shape MCP clients expect (name/description/inputSchema)."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str
    description: str
    input_schema: InputSchema = Field(default_factory=InputSchema, alias="inputSchema")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
