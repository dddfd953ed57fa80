# ==============================
# Parameter Validation
# ==============================
"""
Turn raw caller input (plus verified identity claims) into ParamValues.

Rules:
- Pure: no IO, no logging, no mutation of inputs.
- Schema order is preserved in the output.
- Optional parameters with no value and no default are left out entirely,
  so they never overwrite a template field with None.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from atlas_tools.contracts.errors import ParameterValidationError
from atlas_tools.contracts.parameter_schema import (
    ParameterDef,
    ParameterSchema,
    ParameterType,
    ParamValues,
)

Claims = Mapping[str, Mapping[str, Any]]

# BSON stores integers as int64 at most
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def parse_params(
    schema: ParameterSchema,
    data: Optional[Mapping[str, Any]],
    claims: Optional[Claims] = None,
    *,
    closed: bool = False,
) -> ParamValues:
    """
    Validate `data` against `schema`.

    Raises ParameterValidationError naming the first offending parameter.
    """
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ParameterValidationError(
            "$input",
            f"expected an object of named parameters, got {type(data).__name__}",
        )
    raw = dict(data)
    claims = claims or {}

    if closed:
        declared = set(schema.names())
        for key in raw:
            if key not in declared:
                raise ParameterValidationError(key, "unknown parameter")

    pairs: List[Tuple[str, Any]] = []
    for param in schema:
        if param.from_auth:
            value = _value_from_claims(param, claims)
        else:
            value = raw.get(param.name)
            if value is None:
                if param.has_default:
                    value = param.default
                elif param.required:
                    raise ParameterValidationError(param.name, "parameter is required")
                else:
                    continue
        pairs.append((param.name, coerce_value(param, value, label=param.name)))
    return ParamValues.from_pairs(pairs)


def _value_from_claims(param: ParameterDef, claims: Claims) -> Any:
    for ref in param.auth_services:
        service_claims = claims.get(ref.name)
        if service_claims is None:
            continue
        if ref.field not in service_claims:
            raise ParameterValidationError(
                param.name,
                f"no field named {ref.field!r} in claims from auth service {ref.name!r}",
            )
        return service_claims[ref.field]
    raise ParameterValidationError(param.name, "missing or invalid authentication for parameter")


def coerce_value(param: ParameterDef, value: Any, *, label: str) -> Any:
    """Check `value` against the declared type and return the normalized value."""
    t = param.type
    if t == ParameterType.STRING:
        if not isinstance(value, str):
            raise _mismatch(label, t, value)
        return value

    if t == ParameterType.INTEGER:
        if isinstance(value, bool):
            raise _mismatch(label, t, value)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            raise _mismatch(label, t, value)
        if not INT64_MIN <= value <= INT64_MAX:
            raise ParameterValidationError(label, "integer out of range for a 64-bit value")
        return value

    if t == ParameterType.FLOAT:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _mismatch(label, t, value)
        try:
            return float(value)
        except OverflowError:
            raise ParameterValidationError(label, "number too large for a float") from None

    if t == ParameterType.BOOLEAN:
        if not isinstance(value, bool):
            raise _mismatch(label, t, value)
        return value

    if t == ParameterType.ARRAY:
        if not isinstance(value, (list, tuple)):
            raise _mismatch(label, t, value)
        item_def = param.items
        assert item_def is not None  # enforced by ParameterDef validation
        return [coerce_value(item_def, v, label=f"{label}[{i}]") for i, v in enumerate(value)]

    raise ParameterValidationError(label, f"unsupported parameter type {t!r}")


def _mismatch(label: str, expected: ParameterType, value: Any) -> ParameterValidationError:
    return ParameterValidationError(
        label,
        f"expected {expected.value}, got {type(value).__name__}",
        details={"expected": expected.value},
    )


def claims_summary(claims: Optional[Claims]) -> Dict[str, List[str]]:
    """Service -> claim field names; safe to log (no claim values)."""
    return {svc: sorted(fields.keys()) for svc, fields in (claims or {}).items()}
