"""
Detail aggregation for sale posts.

Joins a post with its store, images and view count and computes the
discount percentage. Nothing here is cached; every read recomputes.
"""
import asyncio
import logging
import math
from typing import Optional

from utsalapp.schemas import SalePost, SalePostWithDetails
from utsalapp.storage import Storage

logger = logging.getLogger(__name__)


def discount_percent(price_original: float, price_sale: float) -> int:
    """Whole-number percentage saved, rounded half up (12.5 -> 13)."""
    return math.floor((1 - price_sale / price_original) * 100 + 0.5)


async def with_details(storage: Storage, post: SalePost) -> Optional[SalePostWithDetails]:
    """
    Expand a post into its read-facing form.

    Returns None when the post's store no longer exists; such orphaned
    posts must never reach clients.
    """
    store = await storage.get_store(post.store_id)
    if store is None:
        logger.warning(f"Sale post {post.id} references missing store {post.store_id}, skipping")
        return None

    images = await storage.list_images(post.id)
    view_count = await storage.count_view_events(post.id)

    return SalePostWithDetails(
        **post.model_dump(),
        store=store,
        images=images,
        view_count=view_count,
        discount_percent=discount_percent(post.price_original, post.price_sale),
    )


async def with_details_batch(storage: Storage, posts: list[SalePost]) -> list[SalePostWithDetails]:
    """Expand many posts, dropping orphans instead of failing the listing."""
    detailed = await asyncio.gather(*(with_details(storage, post) for post in posts))
    return [d for d in detailed if d is not None]


async def get_post_with_details(storage: Storage, post_id: str) -> Optional[SalePostWithDetails]:
    post = await storage.get_sale_post(post_id)
    if post is None:
        return None
    return await with_details(storage, post)
