"""
In-process entity store backed by plain dicts.

Suitable for development and tests. Writes are serialized with an
``asyncio.Lock`` and each write swaps in a freshly validated record.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from utsalapp.errors import ValidationError
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
from utsalapp.storage.base import Storage, is_within_window, matches_search
from utsalapp.time_utils import utcnow

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class MemoryStorage(Storage):

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._lock = asyncio.Lock()

        self._users: dict[str, User] = {}
        self._stores: dict[str, Store] = {}
        self._sale_posts: dict[str, SalePost] = {}
        self._images: dict[str, Image] = {}
        self._view_events: dict[str, ViewEvent] = {}

        # Secondary indexes
        self._user_by_email: dict[str, str] = {}
        self._store_by_owner: dict[str, str] = {}
        self._images_by_post: dict[str, list[str]] = {}
        self._views_by_post: dict[str, list[str]] = {}

    # Users

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_id = self._user_by_email.get(email)
        return self._users.get(user_id) if user_id else None

    async def create_user(self, email: str, password_hash: str, role: Role) -> User:
        user = User(
            id=_new_id(),
            email=email,
            password_hash=password_hash,
            role=role,
            created_at=self._clock(),
        )
        async with self._lock:
            if email in self._user_by_email:
                raise ValidationError("email", "Email already registered")
            self._users[user.id] = user
            self._user_by_email[email] = user.id
        return user

    # Stores

    async def get_store(self, store_id: str) -> Optional[Store]:
        return self._stores.get(store_id)

    async def get_store_by_owner(self, owner_user_id: str) -> Optional[Store]:
        store_id = self._store_by_owner.get(owner_user_id)
        return self._stores.get(store_id) if store_id else None

    async def create_store(self, data: StoreCreate) -> Store:
        store = Store(id=_new_id(), created_at=self._clock(), **data.model_dump())
        async with self._lock:
            self._stores[store.id] = store
            self._store_by_owner[store.owner_user_id] = store.id
        return store

    async def update_store(self, store_id: str, updates: dict[str, Any]) -> Optional[Store]:
        async with self._lock:
            store = self._stores.get(store_id)
            if store is None:
                return None
            updated = Store.model_validate({**store.model_dump(), **updates})
            self._stores[store_id] = updated
            return updated

    async def delete_store(self, store_id: str) -> bool:
        async with self._lock:
            store = self._stores.pop(store_id, None)
            if store is None:
                return False
            self._store_by_owner.pop(store.owner_user_id, None)
            for post in [p for p in self._sale_posts.values() if p.store_id == store_id]:
                self._drop_post(post.id)
            return True

    # Sale posts

    async def get_sale_post(self, post_id: str) -> Optional[SalePost]:
        return self._sale_posts.get(post_id)

    async def list_sale_posts(
        self,
        store_id: Optional[str] = None,
        category: Optional[Category] = None,
        search: Optional[str] = None,
        active_only: bool = False,
        now: Optional[datetime] = None,
    ) -> list[SalePost]:
        posts = list(self._sale_posts.values())

        if store_id:
            posts = [p for p in posts if p.store_id == store_id]
        if category:
            posts = [p for p in posts if p.category == category]
        if active_only:
            now = now or self._clock()
            posts = [p for p in posts if is_within_window(p, now)]
        if search:
            posts = [p for p in posts if matches_search(p, search)]

        return posts

    async def create_sale_post(self, fields: dict[str, Any]) -> SalePost:
        post = SalePost(id=_new_id(), created_at=self._clock(), **fields)
        async with self._lock:
            self._sale_posts[post.id] = post
        return post

    async def update_sale_post(self, post_id: str, updates: dict[str, Any]) -> Optional[SalePost]:
        async with self._lock:
            post = self._sale_posts.get(post_id)
            if post is None:
                return None
            updated = SalePost.model_validate({**post.model_dump(), **updates})
            self._sale_posts[post_id] = updated
            return updated

    def _drop_post(self, post_id: str) -> bool:
        # Caller holds the lock
        for image_id in self._images_by_post.pop(post_id, []):
            self._images.pop(image_id, None)
        for event_id in self._views_by_post.pop(post_id, []):
            self._view_events.pop(event_id, None)
        return self._sale_posts.pop(post_id, None) is not None

    async def delete_sale_post(self, post_id: str) -> bool:
        async with self._lock:
            return self._drop_post(post_id)

    # Images

    async def list_images(self, post_id: str) -> list[Image]:
        return [self._images[i] for i in self._images_by_post.get(post_id, [])]

    async def create_images(self, post_id: str, images: list[ImageIn]) -> list[Image]:
        created = [
            Image(id=_new_id(), sale_post_id=post_id, url=img.url, alt=img.alt)
            for img in images
        ]
        async with self._lock:
            index = self._images_by_post.setdefault(post_id, [])
            for image in created:
                self._images[image.id] = image
                index.append(image.id)
        return created

    async def replace_images(self, post_id: str, images: list[ImageIn]) -> list[Image]:
        created = [
            Image(id=_new_id(), sale_post_id=post_id, url=img.url, alt=img.alt)
            for img in images
        ]
        async with self._lock:
            for image_id in self._images_by_post.pop(post_id, []):
                self._images.pop(image_id, None)
            self._images_by_post[post_id] = [image.id for image in created]
            for image in created:
                self._images[image.id] = image
        return created

    # View events

    async def create_view_event(self, post_id: str, ip_hash: Optional[str] = None) -> ViewEvent:
        event = ViewEvent(
            id=_new_id(),
            sale_post_id=post_id,
            viewed_at=self._clock(),
            ip_hash=ip_hash,
        )
        async with self._lock:
            self._view_events[event.id] = event
            self._views_by_post.setdefault(post_id, []).append(event.id)
        return event

    async def list_view_events(self, post_id: str) -> list[ViewEvent]:
        return [self._view_events[i] for i in self._views_by_post.get(post_id, [])]

    async def count_view_events(self, post_id: str) -> int:
        return len(self._views_by_post.get(post_id, []))
