from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional

from utsalapp.config import get_settings
from utsalapp.database import get_storage
from utsalapp.errors import NotFound
from utsalapp.rate_limiter import limiter
from utsalapp.routers.auth import require_auth
from utsalapp.schemas import (
    Caller,
    Category,
    FilterSpec,
    SalePostCreate,
    SalePostUpdate,
    SalePostWithDetails,
    SalePostsList,
    SortBy,
)
from utsalapp.services import sale_posts as post_service
from utsalapp.services.aggregation import get_post_with_details
from utsalapp.services.post_query import query_page
from utsalapp.services.tracking import hash_ip, record_view
from utsalapp.storage import Storage

settings = get_settings()

router = APIRouter(prefix="/posts", tags=["posts"])


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, falling back to the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


@router.get("", response_model=SalePostsList)
async def list_posts(
    category: Optional[Category] = Query(None, description="Filter by category"),
    q: Optional[str] = Query(None, description="Search in title/description"),
    active_only: bool = Query(False, description="Only posts currently on sale"),
    store_id: Optional[str] = Query(None, description="Filter by store"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum sale price"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum sale price"),
    min_discount: Optional[int] = Query(None, ge=0, le=100, description="Minimum discount percentage"),
    sort: SortBy = Query(SortBy.recent, description="Sort by: recent, discount"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    storage: Storage = Depends(get_storage),
):
    """Browse sale posts with filters, sorting and optional pagination."""
    spec = FilterSpec(
        store_id=store_id,
        category=category,
        search=q or None,
        active_only=active_only,
        min_price=min_price,
        max_price=max_price,
        min_discount=min_discount,
        sort_by=sort,
        page=page,
        limit=limit,
    )
    return await query_page(storage, spec)


@router.get("/{post_id}", response_model=SalePostWithDetails)
async def get_post(post_id: str, storage: Storage = Depends(get_storage)):
    """Get a sale post with its store, images and view count."""
    post = await get_post_with_details(storage, post_id)
    if post is None:
        raise NotFound("Sale post not found")
    return post


@router.post("", response_model=SalePostWithDetails, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: SalePostCreate,
    caller: Caller = Depends(require_auth),
    storage: Storage = Depends(get_storage),
):
    """Publish a sale post. Store accounts and admins only."""
    return await post_service.create_sale_post(storage, caller, data)


@router.put("/{post_id}", response_model=SalePostWithDetails)
async def update_post(
    post_id: str,
    data: SalePostUpdate,
    caller: Caller = Depends(require_auth),
    storage: Storage = Depends(get_storage),
):
    """Edit a sale post. Owner or admin only."""
    return await post_service.update_sale_post(storage, caller, post_id, data)


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    caller: Caller = Depends(require_auth),
    storage: Storage = Depends(get_storage),
):
    """Delete a sale post and its images. Owner or admin only."""
    await post_service.delete_sale_post(storage, caller, post_id)
    return {"message": "Sale post deleted"}


@router.post("/{post_id}/view")
@limiter.limit(settings.view_rate_limit)
async def view_post(
    request: Request,
    post_id: str,
    storage: Storage = Depends(get_storage),
):
    """Record one view of a post's detail page."""
    await record_view(storage, post_id, hash_ip(client_ip(request)))
    return {"message": "View recorded"}
