"""
Entity store contract.

Every backend stores Users, Stores, SalePosts, Images and ViewEvents and
answers the indexed lookups the services need. All methods are coroutines;
a backend that cannot complete an operation raises ``BackendUnavailable``.
Lookups for a missing id return ``None`` instead of raising.

Records handed out are immutable snapshots: an update replaces the whole
record, so readers never observe a half-applied write.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from utsalapp.schemas import (
    Category,
    Image,
    ImageIn,
    Role,
    SalePost,
    Store,
    StoreCreate,
    User,
    ViewEvent,
)


def matches_search(post: SalePost, search: str) -> bool:
    """Case-insensitive substring match against title or description."""
    needle = search.lower()
    if needle in post.title.lower():
        return True
    return bool(post.description) and needle in post.description.lower()


def is_within_window(post: SalePost, now: datetime) -> bool:
    """Active flag set and ``starts_at <= now <= ends_at`` (both bounds inclusive)."""
    return post.is_active and post.starts_at <= now <= post.ends_at


class Storage(ABC):
    """Repository interface behind which any persistent backend can sit."""

    # Users

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    async def create_user(self, email: str, password_hash: str, role: Role) -> User: ...

    # Stores

    @abstractmethod
    async def get_store(self, store_id: str) -> Optional[Store]: ...

    @abstractmethod
    async def get_store_by_owner(self, owner_user_id: str) -> Optional[Store]: ...

    @abstractmethod
    async def create_store(self, data: StoreCreate) -> Store: ...

    @abstractmethod
    async def update_store(self, store_id: str, updates: dict[str, Any]) -> Optional[Store]: ...

    @abstractmethod
    async def delete_store(self, store_id: str) -> bool:
        """Delete the store together with its sale posts, their images and view events."""

    # Sale posts

    @abstractmethod
    async def get_sale_post(self, post_id: str) -> Optional[SalePost]: ...

    @abstractmethod
    async def list_sale_posts(
        self,
        store_id: Optional[str] = None,
        category: Optional[Category] = None,
        search: Optional[str] = None,
        active_only: bool = False,
        now: Optional[datetime] = None,
    ) -> list[SalePost]:
        """Posts narrowed by the structural filters only."""

    @abstractmethod
    async def create_sale_post(self, fields: dict[str, Any]) -> SalePost: ...

    @abstractmethod
    async def update_sale_post(self, post_id: str, updates: dict[str, Any]) -> Optional[SalePost]: ...

    @abstractmethod
    async def delete_sale_post(self, post_id: str) -> bool:
        """Delete the post with its images and view events as one unit. Returns False if it did not exist."""

    # Images

    @abstractmethod
    async def list_images(self, post_id: str) -> list[Image]:
        """Images of a post in insertion order."""

    @abstractmethod
    async def create_images(self, post_id: str, images: list[ImageIn]) -> list[Image]: ...

    @abstractmethod
    async def replace_images(self, post_id: str, images: list[ImageIn]) -> list[Image]:
        """Swap the post's whole image set; on failure the old set is kept."""

    # View events

    @abstractmethod
    async def create_view_event(self, post_id: str, ip_hash: Optional[str] = None) -> ViewEvent: ...

    @abstractmethod
    async def list_view_events(self, post_id: str) -> list[ViewEvent]: ...

    @abstractmethod
    async def count_view_events(self, post_id: str) -> int: ...
