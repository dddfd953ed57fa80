# ==============================
# Tests: Concurrent Invocation Isolation
# ==============================
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor


def test_concurrent_invocations_see_only_their_own_overlay(make_tool, collection) -> None:
    collection.docs = [
        {"_id": 1, "status": "active"},
        {"_id": 2, "status": "active"},
    ]
    tool = make_tool(query={"status": "active"}, parameters=[{"name": "_id", "type": "integer"}])
    template_before = tool.query

    # both calls are inside find() at the same time before either returns
    barrier = threading.Barrier(2, timeout=5)
    collection.before_find = lambda _filter: barrier.wait()

    def call(_id: int):
        return tool.invoke(tool.parse_params({"_id": _id}))

    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(call, 1)
        second = pool.submit(call, 2)
        r1, r2 = first.result(timeout=10), second.result(timeout=10)

    assert r1 == [{"_id": 1, "status": "active"}]
    assert r2 == [{"_id": 2, "status": "active"}]
    assert sorted(c["_id"] for c in collection.find_calls) == [1, 2]
    assert all(c["status"] == "active" for c in collection.find_calls)
    assert tool.query == template_before


def test_repeated_invocations_leave_template_unchanged(make_tool, collection) -> None:
    tool = make_tool(query={"status": "active"}, parameters=[{"name": "status", "type": "string"}])
    tool.invoke(tool.parse_params({"status": "archived"}))
    tool.invoke(tool.parse_params({"status": "banned"}))

    assert collection.find_calls == [{"status": "archived"}, {"status": "banned"}]
    assert tool.query == {"status": "active"}
