# ==============================
# Testing Fixtures
# ==============================
from __future__ import annotations

import copy
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from atlas_tools.sources.mongodb import MongoDBSource
from atlas_tools.tools.mongodb_tool import MongoDBTool, MongoDBToolConfig


# ==============================
# In-memory store fakes
# ==============================
class FakeCursor:
    """Iterable cursor with the context manager protocol, like pymongo's Cursor."""

    def __init__(self, items: List[Any], *, error: Optional[Exception] = None, fail_at: Optional[int] = None) -> None:
        self._items = list(items)
        self._error = error
        self._fail_at = fail_at
        self.closed = False
        self.yielded = 0

    def __iter__(self):
        for i, item in enumerate(self._items):
            if self._error is not None and self._fail_at == i:
                raise self._error
            self.yielded += 1
            yield item
        if self._error is not None and (self._fail_at is None or self._fail_at >= len(self._items)):
            raise self._error

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> bool:
        self.close()
        return False

    def close(self) -> None:
        self.closed = True


def _matches(doc: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    """Top-level equality only; operator keys and matcher values are ignored."""
    for key, value in (query or {}).items():
        if key.startswith("$") or isinstance(value, dict):
            continue
        if doc.get(key) != value:
            return False
    return True


class FakeCollection:
    def __init__(self, name: str, docs: Optional[List[Any]] = None) -> None:
        self.name = name
        self.docs: List[Any] = list(docs or [])
        self.find_calls: List[Dict[str, Any]] = []
        self.aggregate_calls: List[List[Dict[str, Any]]] = []
        self.cursors: List[FakeCursor] = []

        self.find_error: Optional[Exception] = None
        self.aggregate_error: Optional[Exception] = None
        self.cursor_error: Optional[Exception] = None
        self.cursor_fail_at: Optional[int] = None
        self.before_find: Optional[Callable[[Dict[str, Any]], None]] = None

        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.find_calls) + len(self.aggregate_calls)

    def find(self, filter: Optional[Dict[str, Any]] = None) -> FakeCursor:
        with self._lock:
            self.find_calls.append(copy.deepcopy(filter))
        if self.before_find is not None:
            self.before_find(filter or {})
        if self.find_error is not None:
            raise self.find_error
        matched = [copy.deepcopy(d) for d in self.docs if not isinstance(d, dict) or _matches(d, filter)]
        return self._cursor(matched)

    def aggregate(self, pipeline: List[Dict[str, Any]]) -> FakeCursor:
        with self._lock:
            self.aggregate_calls.append(copy.deepcopy(pipeline))
        if self.aggregate_error is not None:
            raise self.aggregate_error
        docs = [copy.deepcopy(d) for d in self.docs]
        for stage in pipeline:
            if "$match" in stage:
                docs = [d for d in docs if _matches(d, stage["$match"])]
            elif "$vectorSearch" in stage:
                docs = docs[: stage["$vectorSearch"]["limit"]]
        return self._cursor(docs)

    def _cursor(self, items: List[Any]) -> FakeCursor:
        cursor = FakeCursor(items, error=self.cursor_error, fail_at=self.cursor_fail_at)
        with self._lock:
            self.cursors.append(cursor)
        return cursor


class FakeDatabase:
    def __init__(self, name: str) -> None:
        self.name = name
        self._collections: Dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


class FakeClient:
    def __init__(self) -> None:
        self._databases: Dict[str, FakeDatabase] = {}
        self.closed = False

    def get_database(self, name: str) -> FakeDatabase:
        if name not in self._databases:
            self._databases[name] = FakeDatabase(name)
        return self._databases[name]

    def close(self) -> None:
        self.closed = True


# ==============================
# Fixtures
# ==============================
DATABASE = "testdb"
SOURCE_NAME = "my-mongo"


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def mongo_source(fake_client: FakeClient) -> MongoDBSource:
    return MongoDBSource(name=SOURCE_NAME, client=fake_client, database=DATABASE)


@pytest.fixture
def sources(mongo_source: MongoDBSource) -> Dict[str, Any]:
    return {SOURCE_NAME: mongo_source}


@pytest.fixture
def collection(fake_client: FakeClient) -> FakeCollection:
    """The collection every tool built by make_tool() points at."""
    return fake_client.get_database(DATABASE).get_collection("users")


def tool_config(**overrides: Any) -> MongoDBToolConfig:
    raw: Dict[str, Any] = {
        "name": "find-users",
        "kind": "mongodb-atlas",
        "source": SOURCE_NAME,
        "description": "Find users.",
        "collection": "users",
        "operation": "find",
        "query": {},
        "parameters": [],
    }
    raw.update(overrides)
    return MongoDBToolConfig.model_validate(raw)


@pytest.fixture
def make_tool(sources: Dict[str, Any]) -> Callable[..., MongoDBTool]:
    def _make(**overrides: Any) -> MongoDBTool:
        return tool_config(**overrides).initialize(sources)

    return _make


VECTOR_PARAMETERS = [
    {"name": "indexName", "type": "string", "description": "Vector index."},
    {"name": "embedding", "type": "array", "description": "Query vector.", "items": {"type": "float"}},
    {"name": "path", "type": "string", "description": "Embedding field."},
]


@pytest.fixture
def make_config() -> Callable[..., MongoDBToolConfig]:
    return tool_config


@pytest.fixture
def vector_parameters() -> List[Dict[str, Any]]:
    return copy.deepcopy(VECTOR_PARAMETERS)
