from fastapi import APIRouter, Depends, Query

from utsalapp.database import get_storage
from utsalapp.routers.auth import require_auth
from utsalapp.schemas import Caller, FilterSpec, SalePostWithDetails, Store, StoreUpdate
from utsalapp.services import stores as store_service
from utsalapp.services.post_query import query_posts
from utsalapp.storage import Storage

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("/{store_id}", response_model=Store)
async def get_store(store_id: str, storage: Storage = Depends(get_storage)):
    """Get a store's public profile."""
    return await store_service.get_store(storage, store_id)


@router.put("/{store_id}", response_model=Store)
async def update_store(
    store_id: str,
    data: StoreUpdate,
    caller: Caller = Depends(require_auth),
    storage: Storage = Depends(get_storage),
):
    """Update a store profile. Owner or admin only."""
    return await store_service.update_store(storage, caller, store_id, data)


@router.get("/{store_id}/posts", response_model=list[SalePostWithDetails])
async def get_store_posts(
    store_id: str,
    active_only: bool = Query(False, description="Only posts currently on sale"),
    storage: Storage = Depends(get_storage),
):
    """All sale posts of a store, newest first."""
    await store_service.get_store(storage, store_id)
    return await query_posts(storage, FilterSpec(store_id=store_id, active_only=active_only))
