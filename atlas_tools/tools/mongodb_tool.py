# ==============================
# MongoDB Query Tool
# ==============================
"""
The "mongodb-atlas" tool: a configured query against one collection.

Lifecycle:
- MongoDBToolConfig is loaded once from the tools file (immutable).
- initialize(sources) resolves the named source, checks its type, deep-copies
  the query template and precomputes the manifest projections.
- MongoDBTool is then invoked any number of times, possibly concurrently.
  Its state is read-only; every call binds onto a fresh copy of the template.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ConfigDict, Field, field_validator

from atlas_tools.contracts.errors import ConfigurationError
from atlas_tools.contracts.manifest_schema import InvocationSchema, Manifest
from atlas_tools.contracts.parameter_schema import ParameterSchema, ParamValues
from atlas_tools.governance.auth import is_authorized
from atlas_tools.governance.security import SecurityRedactor
from atlas_tools.sources.mongodb import MongoDBSource
from atlas_tools.tools.base import BaseTool, BaseToolConfig
from atlas_tools.tools.context import InvocationContext
from atlas_tools.tools.dispatcher import OperationKind, dispatch
from atlas_tools.tools.manifest import build_invocation_schema, build_manifest
from atlas_tools.tools.parameters import parse_params

logger = logging.getLogger(__name__)

TOOL_KIND = "mongodb-atlas"


class MongoDBToolConfig(BaseToolConfig):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    kind: str = Field(default=TOOL_KIND)
    source: str = Field(..., min_length=1, description="Name of the source this tool queries.")
    description: str = Field(..., description="Shown to callers in the manifest.")
    collection: str = Field(..., min_length=1)
    operation: str = Field(default=OperationKind.FIND.value, description="find | aggregate | vectorSearch")
    query: Dict[str, Any] = Field(default_factory=dict, description="Base query/pipeline template.")
    auth_required: List[str] = Field(default_factory=list, alias="authRequired")
    parameters: ParameterSchema = Field(default_factory=ParameterSchema)
    request_body: Optional[str] = Field(default=None, alias="requestBody", description="Stored, not used by dispatch.")
    strict_parameters: bool = Field(default=False, alias="strictParameters", description="Reject undeclared inputs.")
    vector_prefilter: bool = Field(
        default=False,
        alias="vectorPrefilter",
        description="vectorSearch: pass the filter as $vectorSearch.filter instead of a leading $match (Atlas).",
    )

    @field_validator("kind")
    @classmethod
    def _kind_matches(cls, v: str) -> str:
        if v != TOOL_KIND:
            raise ValueError(f"kind must be {TOOL_KIND!r}, got {v!r}")
        return v

    def initialize(self, sources: Mapping[str, Any]) -> "MongoDBTool":
        raw = sources.get(self.source)
        if raw is None:
            raise ConfigurationError(
                f"no source named {self.source!r} configured",
                details={"tool": self.name, "source": self.source},
            )
        if not isinstance(raw, MongoDBSource):
            raise ConfigurationError(
                f"invalid source for {TOOL_KIND!r} tool",
                details={"tool": self.name, "source": self.source, "source_kind": getattr(raw, "kind", type(raw).__name__)},
            )

        if self.operation not in {k.value for k in OperationKind}:
            # still bound: dispatch reports the unsupported kind per call
            logger.warning(
                "tool configured with unsupported operation",
                extra={"tool": self.name, "operation": self.operation},
            )

        return MongoDBTool(config=self, client=raw.client, database=raw.database_name())


class MongoDBTool(BaseTool):
    kind: str = TOOL_KIND

    def __init__(
        self,
        *,
        config: MongoDBToolConfig,
        client: Any,
        database: str,
        redactor: Optional[SecurityRedactor] = None,
    ) -> None:
        self.name = config.name
        self.description = config.description
        self.source = config.source
        self.collection_name = config.collection
        self.operation = config.operation
        self.auth_required = tuple(config.auth_required)
        self.parameters = config.parameters
        self.request_body = config.request_body
        self.strict_parameters = config.strict_parameters
        self.vector_prefilter = config.vector_prefilter

        self.client = client
        self.database = database
        self._query: Dict[str, Any] = copy.deepcopy(dict(config.query))
        self._redactor = redactor or SecurityRedactor()

        self._manifest = build_manifest(
            description=config.description,
            parameters=config.parameters,
            auth_required=config.auth_required,
        )
        self._invocation_schema = build_invocation_schema(
            name=config.name,
            description=config.description,
            parameters=config.parameters,
        )

    @property
    def query(self) -> Dict[str, Any]:
        """A copy of the base template; the tool's own template is never exposed."""
        return copy.deepcopy(self._query)

    def collection(self) -> Any:
        return self.client.get_database(self.database).get_collection(self.collection_name)

    def invoke(self, params: ParamValues, ctx: Optional[InvocationContext] = None) -> List[Dict[str, Any]]:
        return dispatch(
            self.operation,
            self.collection(),
            self._query,
            params,
            ctx or InvocationContext(),
            redactor=self._redactor,
            vector_prefilter=self.vector_prefilter,
        )

    def parse_params(
        self,
        data: Optional[Mapping[str, Any]],
        claims: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> ParamValues:
        return parse_params(self.parameters, data, claims, closed=self.strict_parameters)

    def manifest(self) -> Manifest:
        return self._manifest

    def invocation_schema(self) -> InvocationSchema:
        return self._invocation_schema

    def authorized(self, verified_auth_services: Iterable[str]) -> bool:
        return is_authorized(self.auth_required, verified_auth_services)
