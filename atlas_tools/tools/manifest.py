# ==============================
# Manifest Projection
# ==============================
"""
Derive Manifest and InvocationSchema from a parameter schema.

Pure functions; tools call them once at bind time and cache the results.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from atlas_tools.contracts.manifest_schema import InputSchema, InvocationSchema, Manifest, ParameterManifest
from atlas_tools.contracts.parameter_schema import ParameterDef, ParameterSchema, ParameterType

_JSON_TYPES: Dict[ParameterType, str] = {
    ParameterType.STRING: "string",
    ParameterType.INTEGER: "integer",
    ParameterType.FLOAT: "number",
    ParameterType.BOOLEAN: "boolean",
    ParameterType.ARRAY: "array",
}


def build_manifest(
    *,
    description: str,
    parameters: ParameterSchema,
    auth_required: Sequence[str],
) -> Manifest:
    return Manifest(
        description=description,
        parameters=[_parameter_manifest(p) for p in parameters],
        auth_required=list(auth_required),
    )


def build_invocation_schema(*, name: str, description: str, parameters: ParameterSchema) -> InvocationSchema:
    properties: Dict[str, Dict[str, Any]] = {}
    required: List[str] = []
    for p in parameters:
        # claim-sourced values come from the host, never from the caller
        if p.from_auth:
            continue
        properties[p.name] = _json_schema(p)
        if p.required and not p.has_default:
            required.append(p.name)
    return InvocationSchema(
        name=name,
        description=description,
        input_schema=InputSchema(type="object", properties=properties, required=required),
    )


def _parameter_manifest(p: ParameterDef) -> ParameterManifest:
    return ParameterManifest(
        name=p.name,
        type=p.type.value,
        description=p.description,
        required=p.required and not p.has_default,
        auth_sources=[ref.name for ref in p.auth_services],
        items=_parameter_manifest(p.items) if p.items is not None else None,
    )


def _json_schema(p: ParameterDef) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": _JSON_TYPES[p.type]}
    if p.description:
        out["description"] = p.description
    if p.has_default:
        out["default"] = p.default
    if p.items is not None:
        out["items"] = _json_schema(p.items)
    return out
