# ==============================
# Tests: Parameter Validation
# ==============================
from __future__ import annotations

import pytest
from pydantic import ValidationError

from atlas_tools.contracts.errors import ParameterValidationError
from atlas_tools.contracts.parameter_schema import ParameterSchema, ParamValues
from atlas_tools.tools.parameters import parse_params


def _schema(*params) -> ParameterSchema:
    return ParameterSchema.model_validate(list(params))


def test_parse_params_returns_values_in_schema_order() -> None:
    schema = _schema(
        {"name": "b", "type": "string"},
        {"name": "a", "type": "integer"},
    )
    values = parse_params(schema, {"a": 3, "b": "x"})
    assert [v.name for v in values] == ["b", "a"]
    assert values.as_map() == {"b": "x", "a": 3}


def test_missing_required_parameter_names_it() -> None:
    schema = _schema({"name": "title", "type": "string"})
    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(schema, {})
    assert excinfo.value.param == "title"
    assert "required" in excinfo.value.reason


def test_optional_parameter_without_value_is_absent() -> None:
    schema = _schema({"name": "year", "type": "integer", "required": False})
    values = parse_params(schema, {})
    assert "year" not in values
    assert values.as_map() == {}


def test_default_is_used_when_value_omitted() -> None:
    schema = _schema({"name": "limit", "type": "integer", "default": 5})
    assert parse_params(schema, {}).as_map() == {"limit": 5}
    assert parse_params(schema, {"limit": 7}).as_map() == {"limit": 7}


@pytest.mark.parametrize(
    "ptype,value",
    [
        ("string", 1),
        ("integer", "1"),
        ("integer", True),
        ("integer", 1.5),
        ("float", "1.0"),
        ("float", False),
        ("boolean", "true"),
        ("array", "abc"),
    ],
)
def test_type_mismatch_is_rejected(ptype: str, value) -> None:
    param = {"name": "p", "type": ptype}
    if ptype == "array":
        param["items"] = {"type": "string"}
    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(_schema(param), {"p": value})
    assert excinfo.value.param == "p"
    assert "expected" in excinfo.value.reason


def test_numeric_coercions() -> None:
    schema = _schema(
        {"name": "i", "type": "integer"},
        {"name": "f", "type": "float"},
    )
    values = parse_params(schema, {"i": 4.0, "f": 2})
    assert values.get("i") == 4 and isinstance(values.get("i"), int)
    assert values.get("f") == 2.0 and isinstance(values.get("f"), float)


def test_array_items_are_checked_with_index_in_name() -> None:
    schema = _schema({"name": "embedding", "type": "array", "items": {"type": "float"}})
    assert parse_params(schema, {"embedding": [1, 0.5]}).get("embedding") == [1.0, 0.5]
    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(schema, {"embedding": [0.1, "x"]})
    assert excinfo.value.param == "embedding[1]"


def test_unknown_parameter_rejected_only_when_closed() -> None:
    schema = _schema({"name": "a", "type": "string"})
    assert parse_params(schema, {"a": "x", "extra": 1}).as_map() == {"a": "x"}
    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(schema, {"a": "x", "extra": 1}, closed=True)
    assert excinfo.value.param == "extra"
    assert excinfo.value.reason == "unknown parameter"


def test_auth_parameter_comes_from_claims_not_input() -> None:
    schema = _schema(
        {
            "name": "email",
            "type": "string",
            "authServices": [{"name": "other-auth", "field": "mail"}, {"name": "google-auth", "field": "email"}],
        }
    )
    claims = {"google-auth": {"email": "alice@example.com"}}
    values = parse_params(schema, {"email": "mallory@example.com"}, claims)
    assert values.get("email") == "alice@example.com"

    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(schema, {"email": "mallory@example.com"}, {})
    assert excinfo.value.param == "email"


def test_parse_params_is_deterministic_and_does_not_mutate_input() -> None:
    schema = _schema({"name": "tags", "type": "array", "items": {"type": "string"}})
    data = {"tags": ["a", "b"]}
    first = parse_params(schema, data)
    second = parse_params(schema, data)
    assert first == second
    assert data == {"tags": ["a", "b"]}


def test_schema_rejects_duplicate_names() -> None:
    with pytest.raises(ValidationError):
        _schema({"name": "a", "type": "string"}, {"name": "a", "type": "integer"})


def test_array_parameter_requires_items() -> None:
    with pytest.raises(ValidationError):
        _schema({"name": "a", "type": "array"})


def test_param_values_reject_duplicates() -> None:
    with pytest.raises(ValueError):
        ParamValues.from_pairs([("a", 1), ("a", 2)])


@pytest.mark.parametrize("value", [2**63, -(2**63) - 1, 2**70, 1e300])
def test_integer_outside_int64_range_is_rejected(value) -> None:
    schema = _schema({"name": "n", "type": "integer"})
    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(schema, {"n": value})
    assert excinfo.value.param == "n"
    assert "out of range" in excinfo.value.reason


def test_integer_int64_bounds_are_accepted() -> None:
    schema = _schema({"name": "lo", "type": "integer"}, {"name": "hi", "type": "integer"})
    values = parse_params(schema, {"lo": -(2**63), "hi": 2**63 - 1})
    assert values.as_map() == {"lo": -(2**63), "hi": 2**63 - 1}


def test_float_from_huge_int_is_rejected() -> None:
    schema = _schema({"name": "x", "type": "float"})
    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(schema, {"x": 10**400})
    assert excinfo.value.param == "x"


@pytest.mark.parametrize("data", [["a"], "a=1", 42])
def test_non_mapping_input_is_rejected(data) -> None:
    schema = _schema({"name": "a", "type": "string", "required": False})
    with pytest.raises(ParameterValidationError) as excinfo:
        parse_params(schema, data)
    assert excinfo.value.param == "$input"
    assert parse_params(schema, None).as_map() == {}
