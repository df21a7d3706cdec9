from fastapi import Depends, HTTPException

from queryable.config import Settings, get_settings
from queryable.store import DataStore, open_store
from queryable.v1.models import StudioOptions


def open_store_or_400(data_dir: str, store_id: str) -> DataStore:
    try:
        return open_store(data_dir, store_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def get_store(store_id: str, settings: Settings = Depends(get_settings)):
    store = open_store_or_400(settings.data_dir, store_id)

    # The store is opened per request and closed once the response is sent
    try:
        yield store
    finally:
        store.close()


def get_studio_options(settings: Settings = Depends(get_settings)) -> StudioOptions:
    return settings.studio_options()
