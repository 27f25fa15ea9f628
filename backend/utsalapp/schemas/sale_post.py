from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum

from utsalapp.schemas.store import Store


class Category(str, Enum):
    fatnad = "fatnad"        # clothing
    husgogn = "husgogn"      # furniture
    raftaeki = "raftaeki"    # electronics
    matvorur = "matvorur"    # groceries
    annad = "annad"          # other


class SortBy(str, Enum):
    recent = "recent"
    discount = "discount"


class ImageIn(BaseModel):
    url: str
    alt: str | None = None


class Image(BaseModel):
    id: str
    sale_post_id: str
    url: str
    alt: str | None = None

    class Config:
        from_attributes = True
        frozen = True


class ViewEvent(BaseModel):
    id: str
    sale_post_id: str
    viewed_at: datetime
    ip_hash: str | None = None

    class Config:
        from_attributes = True
        frozen = True


class SalePostCreate(BaseModel):
    title: str
    description: str | None = None
    category: str
    price_original: float
    price_sale: float
    starts_at: datetime
    ends_at: datetime
    images: list[ImageIn] = []
    # Only read for admin callers; store accounts always publish to their own store
    store_id: str | None = None


class SalePostUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    price_original: float | None = None
    price_sale: float | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    is_active: bool | None = None
    images: list[ImageIn] | None = None


class SalePost(BaseModel):
    id: str
    store_id: str
    title: str
    description: str | None = None
    category: Category
    price_original: float
    price_sale: float
    starts_at: datetime
    ends_at: datetime
    is_active: bool = True
    created_at: datetime

    class Config:
        from_attributes = True
        frozen = True


class SalePostWithDetails(SalePost):
    """Read-facing join of a post with its store, images and view count."""
    store: Store
    images: list[Image]
    view_count: int
    discount_percent: int


class SalePostsList(BaseModel):
    items: list[SalePostWithDetails]
    total: int
    page: int
    limit: int | None
    has_more: bool


class FilterSpec(BaseModel):
    store_id: str | None = None
    category: Category | None = None
    search: str | None = None
    active_only: bool = False
    min_price: float | None = Field(None, ge=0)
    max_price: float | None = Field(None, ge=0)
    min_discount: int | None = Field(None, ge=0, le=100)
    sort_by: SortBy = SortBy.recent
    page: int = Field(1, ge=1)
    limit: int | None = Field(None, ge=1)
