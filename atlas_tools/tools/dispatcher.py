# ==============================
# Operation Dispatcher
# ==============================
"""
Turn a bound query into a backing-store request and shape the results.

Operation kinds (closed set, resolved once per call):
- find          filter read; results in store order
- aggregate     builds the staged pipeline, then refuses: not implemented yet
- vectorSearch  [$match filter] + trailing $vectorSearch stage, embedding field stripped;
                with prefilter=True the filter moves into $vectorSearch.filter instead

Error mapping:
- store rejects the query/pipeline      -> QueryExecutionError
- query cannot be encoded to BSON       -> QueryExecutionError
- streamed item is not a document       -> DecodeError
- stream fails after it started         -> CursorError
- caller cancelled / deadline passed    -> InvocationCancelledError / DeadlineExceededError
  (a driver timeout counts as the caller's deadline only when one was set)

The cursor is always consumed inside `with cursor:` so it is closed on every
exit path, including cancellation.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import pymongo
from bson.errors import BSONError, InvalidDocument
from pymongo.errors import OperationFailure, PyMongoError

from atlas_tools.contracts.errors import (
    CursorError,
    DeadlineExceededError,
    DecodeError,
    MissingOrInvalidParameterError,
    QueryExecutionError,
    UnsupportedOperationError,
)
from atlas_tools.contracts.parameter_schema import ParamValues
from atlas_tools.governance.security import SecurityRedactor
from atlas_tools.tools.context import InvocationContext
from atlas_tools.tools.query_binder import bind_query, build_stage_pipeline

logger = logging.getLogger(__name__)

DEFAULT_NUM_CANDIDATES = 10
DEFAULT_LIMIT = 10

INDEX_NAME_PARAM = "indexName"
EMBEDDING_PARAM = "embedding"
PATH_PARAM = "path"
VECTOR_PARAMS = (INDEX_NAME_PARAM, EMBEDDING_PARAM, PATH_PARAM)

# smallest client-side timeout handed to pymongo; timeout(0) would mean "no limit"
_MIN_TIMEOUT_SECONDS = 0.001

# raised by bson while encoding the outgoing filter or pipeline
_ENCODE_ERRORS = (InvalidDocument, OverflowError, TypeError, ValueError)


class OperationKind(str, Enum):
    FIND = "find"
    AGGREGATE = "aggregate"
    VECTOR_SEARCH = "vectorSearch"


def resolve_operation(operation: str) -> OperationKind:
    try:
        return OperationKind(operation)
    except ValueError:
        raise UnsupportedOperationError(str(operation)) from None


# ==============================
# Entry Point
# ==============================
def dispatch(
    operation: str,
    collection: Any,
    template: Mapping[str, Any],
    params: ParamValues,
    ctx: Optional[InvocationContext] = None,
    *,
    redactor: Optional[SecurityRedactor] = None,
    vector_prefilter: bool = False,
) -> List[Dict[str, Any]]:
    kind = resolve_operation(operation)
    ctx = ctx or InvocationContext()
    redactor = redactor or SecurityRedactor()

    if kind is OperationKind.FIND:
        return run_find(collection, bind_query(template, params), ctx)
    if kind is OperationKind.AGGREGATE:
        return run_aggregate(collection, template, params, ctx, redactor=redactor)
    if kind is OperationKind.VECTOR_SEARCH:
        pipeline, path = build_vector_search_pipeline(template, params, prefilter=vector_prefilter)
        return run_vector_search(collection, pipeline, path, ctx)
    raise UnsupportedOperationError(kind.value)


# ==============================
# Branches
# ==============================
def run_find(collection: Any, query: Dict[str, Any], ctx: InvocationContext) -> List[Dict[str, Any]]:
    ctx.raise_if_done()
    logger.debug("find", extra={"data": {"collection": _collection_name(collection)}})
    with _deadline_scope(ctx):
        try:
            cursor = collection.find(query)
        except PyMongoError as exc:
            raise _store_error(exc, "unable to execute query", ctx) from exc
        except _ENCODE_ERRORS as exc:
            raise QueryExecutionError(f"unable to execute query: {exc}") from exc
        return _drain(cursor, ctx)


def run_aggregate(
    collection: Any,
    template: Mapping[str, Any],
    params: ParamValues,
    ctx: InvocationContext,
    *,
    redactor: SecurityRedactor,
) -> List[Dict[str, Any]]:
    ctx.raise_if_done()
    query = bind_query(template, params)
    pipeline = build_stage_pipeline(params)
    logger.debug(
        "aggregate pipeline constructed",
        extra={
            "data": {
                "collection": _collection_name(collection),
                "filter": redactor.sanitize(query),
                "pipeline": redactor.sanitize(pipeline),
            }
        },
    )
    raise UnsupportedOperationError(
        OperationKind.AGGREGATE.value,
        "aggregate operation is not implemented",
        details={"stages": len(pipeline)},
    )


def build_vector_search_pipeline(
    template: Mapping[str, Any],
    params: ParamValues,
    *,
    num_candidates: int = DEFAULT_NUM_CANDIDATES,
    limit: int = DEFAULT_LIMIT,
    prefilter: bool = False,
) -> Tuple[List[Dict[str, Any]], str]:
    """
    Build the vectorSearch pipeline without touching the store.

    Returns (pipeline, path) where `path` is the embedding field to strip
    from results.

    By default a non-empty filter becomes a leading $match stage. Atlas only
    accepts $vectorSearch as the first stage of a pipeline, so deployments
    against Atlas set prefilter=True: the filter is then passed as
    $vectorSearch.filter (its fields must be indexed as filter fields) and
    the pipeline is the single $vectorSearch stage.
    """
    index_name, vector, path = _require_vector_params(params)

    # template fields named indexName/embedding/path are real filter fields
    filter_params = ParamValues(values=tuple(p for p in params if p.name not in VECTOR_PARAMS))
    match = bind_query(template, filter_params)

    stage: Dict[str, Any] = {
        "index": index_name,
        "queryVector": vector,
        "path": path,
        "numCandidates": num_candidates,
        "limit": limit,
    }
    pipeline: List[Dict[str, Any]] = []
    if match and prefilter:
        stage["filter"] = match
    elif match:
        pipeline.append({"$match": match})
    pipeline.append({"$vectorSearch": stage})
    return pipeline, path


def run_vector_search(
    collection: Any,
    pipeline: List[Dict[str, Any]],
    path: str,
    ctx: InvocationContext,
) -> List[Dict[str, Any]]:
    ctx.raise_if_done()
    logger.debug("vectorSearch", extra={"data": {"collection": _collection_name(collection), "stages": len(pipeline)}})
    with _deadline_scope(ctx):
        try:
            cursor = collection.aggregate(pipeline)
        except PyMongoError as exc:
            raise _store_error(exc, "unable to execute vector search", ctx) from exc
        except _ENCODE_ERRORS as exc:
            raise QueryExecutionError(f"unable to execute vector search: {exc}") from exc
        return _drain(cursor, ctx, strip_path=path)


# ==============================
# Helpers
# ==============================
def _require_vector_params(params: ParamValues) -> Tuple[str, List[float], str]:
    values = params.as_map()

    index_name = values.get(INDEX_NAME_PARAM)
    if INDEX_NAME_PARAM not in values:
        raise MissingOrInvalidParameterError(INDEX_NAME_PARAM, "required for vectorSearch")
    if not isinstance(index_name, str) or not index_name:
        raise MissingOrInvalidParameterError(INDEX_NAME_PARAM, "must be a non-empty string")

    embedding = values.get(EMBEDDING_PARAM)
    if EMBEDDING_PARAM not in values:
        raise MissingOrInvalidParameterError(EMBEDDING_PARAM, "required for vectorSearch")
    if not isinstance(embedding, (list, tuple)) or not embedding or not all(_is_number(v) for v in embedding):
        raise MissingOrInvalidParameterError(EMBEDDING_PARAM, "must be a non-empty list of numbers")

    path = values.get(PATH_PARAM)
    if PATH_PARAM not in values:
        raise MissingOrInvalidParameterError(PATH_PARAM, "required for vectorSearch")
    if not isinstance(path, str) or not path:
        raise MissingOrInvalidParameterError(PATH_PARAM, "must be a non-empty string")

    return index_name, [float(v) for v in embedding], path


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


@contextmanager
def _deadline_scope(ctx: InvocationContext) -> Iterator[None]:
    remaining = ctx.remaining()
    if remaining is None:
        yield
        return
    with pymongo.timeout(max(remaining, _MIN_TIMEOUT_SECONDS)):
        yield


def _drain(cursor: Any, ctx: InvocationContext, *, strip_path: Optional[str] = None) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    with cursor:
        items = iter(cursor)
        while True:
            ctx.raise_if_done()
            try:
                item = next(items)
            except StopIteration:
                break
            except _ENCODE_ERRORS as exc:
                # find() is lazy: the filter is encoded and sent on the first fetch
                if not results:
                    raise QueryExecutionError(f"unable to execute query: {exc}") from exc
                raise CursorError(f"cursor error: {exc}", details={"index": len(results)}) from exc
            except BSONError as exc:
                raise DecodeError(f"unable to parse document: {exc}", details={"index": len(results)}) from exc
            except OperationFailure as exc:
                if not results:
                    raise _store_error(exc, "unable to execute query", ctx) from exc
                raise _store_error(exc, "cursor error", ctx, cls=CursorError) from exc
            except PyMongoError as exc:
                raise _store_error(exc, "cursor error", ctx, cls=CursorError) from exc

            doc = _to_document(item, index=len(results))
            if strip_path:
                strip_field(doc, strip_path)
            results.append(doc)
    return results


def _to_document(item: Any, *, index: int) -> Dict[str, Any]:
    if not isinstance(item, Mapping):
        raise DecodeError(
            f"unable to parse document: expected a mapping, got {type(item).__name__}",
            details={"index": index},
        )
    try:
        return dict(item)
    except BSONError as exc:
        raise DecodeError(f"unable to parse document: {exc}", details={"index": index}) from exc


def strip_field(doc: Dict[str, Any], path: str) -> None:
    """Remove `path` (dotted for nested fields) from `doc`; nested dicts are copied, not edited in place."""
    parts = path.split(".")
    cur = doc
    for part in parts[:-1]:
        nxt = cur.get(part)
        if not isinstance(nxt, Mapping):
            return
        nxt = dict(nxt)
        cur[part] = nxt
        cur = nxt
    cur.pop(parts[-1], None)


def _store_error(
    exc: PyMongoError,
    prefix: str,
    ctx: InvocationContext,
    *,
    cls: type = QueryExecutionError,
) -> Exception:
    details: Dict[str, Any] = {"driver_error": type(exc).__name__}
    code = getattr(exc, "code", None)
    if code is not None:
        details["server_code"] = code
    # without a caller deadline, a driver timeout (e.g. no reachable server) is a store failure
    if getattr(exc, "timeout", False) and ctx.deadline_at is not None:
        return DeadlineExceededError(f"{prefix}: {exc}", details=details)
    return cls(f"{prefix}: {exc}", details=details)


def _collection_name(collection: Any) -> Optional[str]:
    return getattr(collection, "full_name", None) or getattr(collection, "name", None)

