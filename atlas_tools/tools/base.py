# ==============================
# Base Tool Contract
# ==============================
"""
Base contracts for configured tools.

Rules:
- A BaseToolConfig is pure, validated configuration. initialize(sources)
  binds it to a live source and returns a BaseTool; nothing else creates tools.
- Tools do not read env vars or files. Config and sources are injected.
- Tools raise typed errors (contracts/errors.py); the executor turns them
  into ToolResult envelopes for the host.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel

from atlas_tools.contracts.manifest_schema import InvocationSchema, Manifest
from atlas_tools.contracts.parameter_schema import ParamValues
from atlas_tools.tools.context import InvocationContext


class BaseTool(ABC):
    """
    Base class for all bound tools.

    Naming:
    - 'name' is the unique tool name from the tools file.
    - 'kind' is the constant tag of the tool type (e.g. "mongodb-atlas").
    """

    name: str
    kind: str

    @abstractmethod
    def invoke(self, params: ParamValues, ctx: Optional[InvocationContext] = None) -> List[Dict[str, Any]]:
        """Run the tool with already-validated params and return documents."""
        raise NotImplementedError

    @abstractmethod
    def parse_params(
        self,
        data: Optional[Mapping[str, Any]],
        claims: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> ParamValues:
        raise NotImplementedError

    @abstractmethod
    def manifest(self) -> Manifest:
        raise NotImplementedError

    @abstractmethod
    def invocation_schema(self) -> InvocationSchema:
        raise NotImplementedError

    @abstractmethod
    def authorized(self, verified_auth_services: Iterable[str]) -> bool:
        raise NotImplementedError

    def mcp_manifest(self) -> InvocationSchema:
        return self.invocation_schema()


class BaseToolConfig(BaseModel):
    """
    Interface-like base for tool configuration entries.
    Concrete configs declare their fields and implement initialize().
    """

    def initialize(self, sources: Mapping[str, Any]) -> BaseTool:  # pragma: no cover
        raise NotImplementedError
