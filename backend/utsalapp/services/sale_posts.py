"""
Sale post lifecycle: validation, creation, editing and deletion.

Authorization runs before any write, validation before anything is
persisted. A post and its images are created as one logical unit.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from utsalapp.errors import Forbidden, NotFound, ValidationError
from utsalapp.schemas import (
    Caller,
    Category,
    ImageIn,
    Role,
    SalePostCreate,
    SalePostUpdate,
    SalePostWithDetails,
    Store,
)
from utsalapp.services.aggregation import get_post_with_details
from utsalapp.storage import Storage
from utsalapp.time_utils import to_utc_naive

logger = logging.getLogger(__name__)

# Fields a patch may not clear by sending null
REQUIRED_FIELDS = {
    "title", "category", "price_original", "price_sale", "starts_at", "ends_at", "is_active",
}


def validate_post_fields(
    title: Optional[str],
    category: Any,
    price_original: Optional[float],
    price_sale: Optional[float],
    starts_at: Optional[datetime],
    ends_at: Optional[datetime],
) -> Category:
    """Check the per-post business rules, returning the parsed category."""
    if not title or not title.strip():
        raise ValidationError("title", "Title is required")

    try:
        parsed_category = Category(category)
    except ValueError:
        allowed = ", ".join(c.value for c in Category)
        raise ValidationError("category", f"Category must be one of: {allowed}")

    if price_original is None or not price_original > 0:
        raise ValidationError("price_original", "Original price must be greater than zero")
    if price_sale is None or not price_sale > 0:
        raise ValidationError("price_sale", "Sale price must be greater than zero")
    if not price_sale < price_original:
        raise ValidationError("price_sale", "Sale price must be lower than the original price")

    if starts_at is None:
        raise ValidationError("starts_at", "Start time is required")
    if ends_at is None or not to_utc_naive(starts_at) < to_utc_naive(ends_at):
        raise ValidationError("ends_at", "End time must be after start time")

    return parsed_category


def validate_images(images: Optional[list[ImageIn]]) -> list[ImageIn]:
    if not images:
        raise ValidationError("images", "At least one image is required")
    for image in images:
        if not image.url or not image.url.strip():
            raise ValidationError("images", "Image url is required")
    return images


def ensure_can_modify(caller: Caller, store: Optional[Store]):
    """Only the owning store account or an admin may change a store's posts."""
    if caller.is_admin:
        return
    if store is None or store.owner_user_id != caller.user_id:
        raise Forbidden("Not allowed to modify this store's posts")


async def _resolve_target_store(storage: Storage, caller: Caller, store_id: Optional[str]) -> Store:
    if caller.role not in (Role.store, Role.admin):
        raise Forbidden("Only store accounts can publish sale posts")

    if caller.is_admin:
        target_id = store_id or caller.store_id
        if not target_id:
            raise ValidationError("store_id", "Admins must name the store to publish for")
        store = await storage.get_store(target_id)
    else:
        store = await storage.get_store_by_owner(caller.user_id)

    if store is None:
        raise NotFound("Store not found")
    return store


async def create_sale_post(
    storage: Storage,
    caller: Caller,
    data: SalePostCreate,
) -> SalePostWithDetails:
    store = await _resolve_target_store(storage, caller, data.store_id)

    category = validate_post_fields(
        data.title,
        data.category,
        data.price_original,
        data.price_sale,
        data.starts_at,
        data.ends_at,
    )
    images = validate_images(data.images)

    post = await storage.create_sale_post({
        "store_id": store.id,
        "title": data.title.strip(),
        "description": data.description or None,
        "category": category,
        "price_original": data.price_original,
        "price_sale": data.price_sale,
        "starts_at": to_utc_naive(data.starts_at),
        "ends_at": to_utc_naive(data.ends_at),
        "is_active": True,
    })

    try:
        await storage.create_images(post.id, images)
    except Exception:
        # Never leave an image-less post visible
        logger.error(f"Image creation failed for sale post {post.id}, rolling back")
        await storage.delete_sale_post(post.id)
        raise

    logger.info(f"Store {store.id} created sale post {post.id}")
    return await get_post_with_details(storage, post.id)


async def update_sale_post(
    storage: Storage,
    caller: Caller,
    post_id: str,
    patch: SalePostUpdate,
) -> SalePostWithDetails:
    post = await storage.get_sale_post(post_id)
    if post is None:
        raise NotFound("Sale post not found")

    store = await storage.get_store(post.store_id)
    ensure_can_modify(caller, store)

    updates = patch.model_dump(exclude_unset=True, exclude={"images"})
    updates = {
        k: v for k, v in updates.items()
        if not (k in REQUIRED_FIELDS and v is None)
    }
    if "description" in updates:
        updates["description"] = updates["description"] or None
    for key in ("starts_at", "ends_at"):
        if key in updates:
            updates[key] = to_utc_naive(updates[key])

    merged = {**post.model_dump(), **updates}
    category = validate_post_fields(
        merged["title"],
        merged["category"],
        merged["price_original"],
        merged["price_sale"],
        merged["starts_at"],
        merged["ends_at"],
    )
    if "category" in updates:
        updates["category"] = category
    if "title" in updates:
        updates["title"] = updates["title"].strip()

    images = None
    if "images" in patch.model_fields_set and patch.images is not None:
        images = validate_images(patch.images)

    # Images first: a failed swap leaves the post untouched
    if images is not None:
        await storage.replace_images(post_id, images)

    if updates:
        await storage.update_sale_post(post_id, updates)

    logger.info(f"Sale post {post_id} updated by user {caller.user_id}")
    detailed = await get_post_with_details(storage, post_id)
    if detailed is None:
        raise NotFound("Sale post not found")
    return detailed


async def delete_sale_post(storage: Storage, caller: Caller, post_id: str):
    post = await storage.get_sale_post(post_id)
    if post is None:
        raise NotFound("Sale post not found")

    store = await storage.get_store(post.store_id)
    ensure_can_modify(caller, store)

    await storage.delete_sale_post(post_id)

    logger.info(f"Sale post {post_id} deleted by user {caller.user_id}")
