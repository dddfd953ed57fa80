# ==============================
# Tests: Tool Registries
# ==============================
from __future__ import annotations

import pytest

from atlas_tools.tools.mongodb_tool import MongoDBToolConfig
from atlas_tools.tools.registry import ToolKindRegistry, ToolRegistry


def test_default_kind_registry_knows_mongodb_atlas() -> None:
    kinds = ToolKindRegistry.default()
    assert kinds.kinds() == ["mongodb-atlas"]
    assert kinds.resolve("mongodb-atlas") is MongoDBToolConfig
    with pytest.raises(KeyError):
        kinds.resolve("postgres-sql")
    with pytest.raises(ValueError):
        kinds.register(kind="mongodb-atlas", config_cls=MongoDBToolConfig)


def test_tool_registry_register_resolve_and_manifests(make_tool) -> None:
    reg = ToolRegistry()
    tool = make_tool(name="find-users", authRequired=["okta"])
    reg.register(tool)

    assert reg.resolve(" find-users ") is tool
    assert reg.has("find-users")
    assert reg.list() == {"find-users": {"name": "find-users", "kind": "mongodb-atlas"}}
    assert reg.manifests()["find-users"]["authRequired"] == ["okta"]

    with pytest.raises(ValueError):
        reg.register(make_tool(name="find-users"))
    reg.register(make_tool(name="find-users"), overwrite=True)
    assert reg.resolve("find-users") is not tool

    with pytest.raises(KeyError):
        reg.resolve("missing")
