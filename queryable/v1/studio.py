"""Studio middleware: auth, console pages and the query protocol.

A POST body is either a single ``query`` or a ``transaction`` batch. Batches
run statement by statement and stop at the first failure. Statements that
already ran are not rolled back, so a failed batch may be partially applied.

Failures are reported in the body as ``{"error": ...}`` with HTTP 200, only
auth (401) and unsupported methods (405) use the status code.
"""

import inspect
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError

from queryable.config import DEFAULT_EDITOR_URL
from queryable.v1.auth import require_auth
from queryable.v1.console import import_page, studio_page
from queryable.v1.models import (
    ColumnDescriptor,
    NormalizedResult,
    QueryStat,
    StudioOptions,
    StudioQueryRequest,
    StudioTransactionRequest,
    studio_request_adapter,
)

logger = logging.getLogger(__name__)

MAX_ALIAS_ATTEMPTS = 20

RawFunction = Callable[..., Any]


class ExecutionError(Exception):
    pass


class ColumnLimitExceeded(ExecutionError):
    pass


def dedupe_columns(column_names: Sequence[str]) -> List[ColumnDescriptor]:
    """Give every column a unique name, keeping the original as display name.

    The first ``id`` stays ``id``; later ones become ``__id_0``, ``__id_1``...
    """
    used = set()
    headers = []
    for column in column_names:
        name = column
        if name in used:
            for attempt in range(MAX_ALIAS_ATTEMPTS):
                name = f"__{column}_{attempt}"
                if name not in used:
                    break
            else:
                raise ColumnLimitExceeded(
                    f"Too many columns named '{column}' (limit {MAX_ALIAS_ATTEMPTS + 1})"
                )
        used.add(name)
        headers.append(ColumnDescriptor(name=name, display_name=column))
    return headers


def json_safe(value):
    """Make a cell JSON-safe: byte strings become lists of byte values."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return list(bytes(value))
    if isinstance(value, dict):
        return {key: json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    return value


async def _call_raw(raw: RawFunction, statement: str):
    # Bindings are never forwarded from the studio.
    if inspect.iscoroutinefunction(raw):
        return await raw(statement)
    result = await run_in_threadpool(raw, statement)
    if inspect.isawaitable(result):
        result = await result
    return result


async def normalize(raw: RawFunction, statement: str) -> NormalizedResult:
    start = time.perf_counter()
    try:
        result = await _call_raw(raw, statement)
    except Exception as e:
        logger.warning("Statement failed: %s (%s)", statement, e)
        raise ExecutionError(str(e)) from e
    duration_ms = round((time.perf_counter() - start) * 1000, 2)

    headers = dedupe_columns(result.get("columnNames") or [])
    rows = [
        {column.name: json_safe(row[idx]) for idx, column in enumerate(headers)}
        for row in result.get("raw") or []
    ]
    rows_written = result.get("rowsWritten") or 0

    logger.debug("Statement ran in %.2fms: %s", duration_ms, statement)
    return NormalizedResult(
        headers=headers,
        rows=rows,
        stat=QueryStat(
            query_duration_ms=duration_ms,
            rows_affected=rows_written,
            rows_read=result.get("rowsRead") or 0,
            rows_written=rows_written,
        ),
    )


async def dispatch(
    body: Union[StudioQueryRequest, StudioTransactionRequest], raw: RawFunction
) -> Dict[str, Any]:
    try:
        if isinstance(body, StudioQueryRequest):
            result = await normalize(raw, body.statement)
            return {"result": jsonable_encoder(result)}

        results = []
        for statement in body.statements:
            results.append(await normalize(raw, statement))
        return {"result": jsonable_encoder(results)}
    except ExecutionError as e:
        return {"error": str(e) or "Unknown error"}
    except (TypeError, ValueError) as e:
        # Cells the encoder cannot represent
        logger.warning("Could not encode studio result: %s", e)
        return {"error": str(e) or "Unknown error"}


async def studio_middleware(
    request: Request,
    raw: RawFunction,
    options: Optional[StudioOptions] = None,
    editor_url: str = DEFAULT_EDITOR_URL,
) -> Response:
    rejection = require_auth(request, options)
    if rejection is not None:
        return rejection

    if request.method == "GET":
        if request.query_params.get("page") == "import":
            return HTMLResponse(import_page())
        return HTMLResponse(studio_page(editor_url))

    if request.method == "POST":
        try:
            body = studio_request_adapter.validate_json(await request.body())
        except ValidationError:
            return JSONResponse({"error": "Invalid request"})

        logger.debug("Studio %s request %r", body.type, body.id)
        return JSONResponse(await dispatch(body, raw))

    return PlainTextResponse("Method not allowed", status_code=405)
