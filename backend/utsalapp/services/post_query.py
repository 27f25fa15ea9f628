"""
Filter/sort pipeline for sale post listings.

Filtering happens in two phases:
- structural filters (store, category, search, active window) run on raw
  posts in the entity store, before any aggregation;
- derived filters (sale price bounds, minimum discount) run on the
  aggregated records.
Results are then sorted and optionally paginated.
"""
from datetime import datetime
from typing import Optional

from utsalapp.schemas import FilterSpec, SalePostWithDetails, SalePostsList, SortBy
from utsalapp.services.aggregation import with_details_batch
from utsalapp.storage import Storage
from utsalapp.time_utils import to_utc_naive, utcnow


def _passes_derived_filters(post: SalePostWithDetails, spec: FilterSpec) -> bool:
    if spec.min_price is not None and post.price_sale < spec.min_price:
        return False
    if spec.max_price is not None and post.price_sale > spec.max_price:
        return False
    if spec.min_discount is not None and post.discount_percent < spec.min_discount:
        return False
    return True


def sort_posts(posts: list[SalePostWithDetails], sort_by: SortBy) -> list[SalePostWithDetails]:
    """
    Order posts newest first, or by discount with newest first on ties.

    The id is the final tie-break so the order is total and pages cut
    from it never overlap.
    """
    if sort_by == SortBy.discount:
        key = lambda p: (p.discount_percent, p.created_at, p.id)
    else:
        key = lambda p: (p.created_at, p.id)
    return sorted(posts, key=key, reverse=True)


async def _run_query(
    storage: Storage,
    spec: FilterSpec,
    now: Optional[datetime],
) -> list[SalePostWithDetails]:
    candidates = await storage.list_sale_posts(
        store_id=spec.store_id,
        category=spec.category,
        search=spec.search,
        active_only=spec.active_only,
        now=to_utc_naive(now) or utcnow(),
    )

    detailed = await with_details_batch(storage, candidates)
    detailed = [p for p in detailed if _passes_derived_filters(p, spec)]

    return sort_posts(detailed, spec.sort_by)


def _slice(posts: list, spec: FilterSpec) -> list:
    if spec.limit is None:
        return posts
    skip = (spec.page - 1) * spec.limit
    return posts[skip:skip + spec.limit]


async def query_posts(
    storage: Storage,
    spec: FilterSpec,
    now: Optional[datetime] = None,
) -> list[SalePostWithDetails]:
    """
    Detailed posts matching ``spec``, sorted, and paginated when
    ``spec.limit`` is set. Without a limit ``page`` is ignored.
    """
    posts = await _run_query(storage, spec, now)
    return _slice(posts, spec)


async def query_page(
    storage: Storage,
    spec: FilterSpec,
    now: Optional[datetime] = None,
) -> SalePostsList:
    """Same as ``query_posts`` but wrapped with totals for the listing endpoints."""
    posts = await _run_query(storage, spec, now)
    items = _slice(posts, spec)

    total = len(posts)
    if spec.limit is None:
        # Unbounded listing is a single page
        page = 1
        has_more = False
    else:
        page = spec.page
        has_more = spec.page * spec.limit < total

    return SalePostsList(
        items=items,
        total=total,
        page=page,
        limit=spec.limit,
        has_more=has_more,
    )
