import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from queryable.config import Settings, get_settings
from queryable.store import SCHEMA_STORE_ID
from queryable.v1.auth import require_auth
from queryable.v1.dependencies import get_store, get_studio_options, open_store_or_400
from queryable.v1.models import StudioOptions
from queryable.v1.studio import json_safe, studio_middleware

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/schema", response_class=PlainTextResponse)
def read_schema(settings: Settings = Depends(get_settings)):
    store = open_store_or_400(settings.data_dir, SCHEMA_STORE_ID)
    try:
        return store.get_schema()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Query failed: {str(e)}")
    finally:
        store.close()


STUDIO_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/{store_id}/studio", methods=STUDIO_METHODS)
async def studio(
    store_id: str,
    request: Request,
    options: StudioOptions = Depends(get_studio_options),
    settings: Settings = Depends(get_settings),
):
    # Reject before the store file is opened or created
    rejection = require_auth(request, options)
    if rejection is not None:
        return rejection

    store = await run_in_threadpool(open_store_or_400, settings.data_dir, store_id)
    try:
        return await studio_middleware(request, store.raw, options, settings.editor_url)
    finally:
        store.close()


@router.get("/{store_id}/exec")
def execute_query(
    query: Optional[str] = None,
    binding: List[str] = Query(default=[]),
    store=Depends(get_store),
):
    if not query:
        raise HTTPException(status_code=400, detail="query parameter is required")

    try:
        return json_safe(store.exec(query, *binding))
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Query failed: {str(e)}")


@router.get("/{store_id}/schema", response_class=PlainTextResponse)
def read_store_schema(store=Depends(get_store)):
    try:
        return store.get_schema()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Query failed: {str(e)}")


@router.get("/{store_id}")
def list_items(store=Depends(get_store)):
    try:
        return json_safe(store.exec("SELECT * FROM items")["array"])
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Query failed: {str(e)}")


@router.get("/{store_id}/{rest:path}")
def unknown_route(store_id: str, rest: str):
    logger.debug("No route for /%s/%s", store_id, rest)
    return {"error": "Invalid request"}
