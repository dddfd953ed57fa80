# ==============================
# Tests: Runtime Wiring
# ==============================
from __future__ import annotations

from pathlib import Path

from atlas_tools.bootstrap import build_runtime
from atlas_tools.config.loader import load_settings

TOOLS_YAML = """
sources:
  my-mongo:
    kind: mongodb
    uri: ${MONGODB_URI}
    database: testdb
tools:
  find-users:
    kind: mongodb-atlas
    source: my-mongo
    description: Find users by status.
    collection: users
    query:
      status: active
    parameters:
      - name: _id
        type: integer
        required: false
"""


def _repo(tmp_path: Path) -> Path:
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "invocation.yaml").write_text("default_timeout_seconds: 10\n", encoding="utf-8")
    (tmp_path / "tools.yaml").write_text(TOOLS_YAML, encoding="utf-8")
    return tmp_path


def test_build_runtime_registers_tools_and_executes(tmp_path: Path, sources, collection) -> None:
    settings, env = load_settings(repo_root=str(_repo(tmp_path)), env={"MONGODB_URI": "mongodb://localhost"})
    collection.docs = [{"_id": 1, "status": "active"}, {"_id": 2, "status": "inactive"}]

    runtime = build_runtime(settings, env=env, sources=sources, configure_logging=False)

    assert runtime.catalog.errors == []
    assert runtime.registry.has("find-users")
    assert runtime.executor.default_timeout_seconds == 10

    res = runtime.executor.execute(tool_name="find-users", params={})
    assert res.ok is True
    assert res.results == [{"_id": 1, "status": "active"}]

    schemas = runtime.executor.list_tools()
    assert schemas[0]["name"] == "find-users"
    assert schemas[0]["inputSchema"]["required"] == []


def test_runtime_close_closes_sources(tmp_path: Path, sources, fake_client) -> None:
    settings, env = load_settings(repo_root=str(_repo(tmp_path)), env={"MONGODB_URI": "mongodb://localhost"})
    runtime = build_runtime(settings, env=env, sources=sources, configure_logging=False)
    runtime.close()
    assert fake_client.closed is True
