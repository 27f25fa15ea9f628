"""Store profile reads and owner edits."""
import logging

from utsalapp.errors import Forbidden, NotFound
from utsalapp.schemas import Caller, Store, StoreUpdate
from utsalapp.storage import Storage

logger = logging.getLogger(__name__)


async def get_store(storage: Storage, store_id: str) -> Store:
    store = await storage.get_store(store_id)
    if store is None:
        raise NotFound("Store not found")
    return store


async def update_store(
    storage: Storage,
    caller: Caller,
    store_id: str,
    patch: StoreUpdate,
) -> Store:
    store = await get_store(storage, store_id)

    if store.owner_user_id != caller.user_id and not caller.is_admin:
        raise Forbidden("Not allowed to modify this store")

    updates = patch.model_dump(exclude_unset=True)
    # Name is required on the record
    if updates.get("name") is None:
        updates.pop("name", None)
    if not updates:
        return store

    updated = await storage.update_store(store_id, updates)
    if updated is None:
        raise NotFound("Store not found")

    logger.info(f"Store {store_id} updated by user {caller.user_id}")
    return updated
