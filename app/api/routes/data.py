from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.core.rate_limit import rate_limit
from app.schemas.data import SaveDataRequest, SaveDataResponse
from app.services.data_store import StrategyDataStore

router = APIRouter(tags=["Data"])


@lru_cache(maxsize=1)
def get_data_store() -> StrategyDataStore:
    """Return the data store bound to the configured data directory."""
    return StrategyDataStore(settings.app.data_dir)


@router.get(
    "/data",
    dependencies=[Depends(rate_limit("data-read", "DATA_OPS"))],
)
def read_data(
    data_type: str | None = Query(
        None, alias="type", description="outcomes, revenue, priorities, history or all"
    ),
    store: StrategyDataStore = Depends(get_data_store),
) -> Any:
    """Return one strategy document, or all of them with ``type=all``.

    Raises:
        ValidationAppError: 400 for an unknown type.
        DataNotFoundError: 404 when the requested document is missing.
    """
    return store.read(data_type)


@router.post(
    "/data",
    response_model=SaveDataResponse,
    dependencies=[Depends(rate_limit("data-write", "DATA_OPS"))],
)
def save_data(
    body: SaveDataRequest,
    store: StrategyDataStore = Depends(get_data_store),
) -> SaveDataResponse:
    """Overwrite one strategy document, keeping a backup of the previous version."""
    store.write(body.type, body.data)
    return SaveDataResponse()
