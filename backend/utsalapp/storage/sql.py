"""
SQLAlchemy-backed entity store.

Each operation runs in a worker thread with its own session and commits
(or rolls back) as a unit. ORM rows are converted to immutable schema
records before the session closes.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from utsalapp import models
from utsalapp.database import SessionLocal
from utsalapp.errors import BackendUnavailable, ValidationError
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
from utsalapp.storage.base import Storage, matches_search
from utsalapp.time_utils import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlStorage(Storage):

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def _run(self, fn: Callable[[Session], T]) -> T:
        return await run_in_threadpool(self._execute, fn)

    def _execute(self, fn: Callable[[Session], T]) -> T:
        db = self._session_factory()
        try:
            result = fn(db)
            db.commit()
            return result
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Storage operation failed: {e}")
            raise BackendUnavailable() from e
        finally:
            db.close()

    # Users

    async def get_user(self, user_id: str) -> Optional[User]:
        def op(db: Session):
            row = db.get(models.User, user_id)
            return User.model_validate(row) if row else None
        return await self._run(op)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        def op(db: Session):
            row = db.query(models.User).filter(models.User.email == email).first()
            return User.model_validate(row) if row else None
        return await self._run(op)

    async def create_user(self, email: str, password_hash: str, role: Role) -> User:
        def op(db: Session):
            row = models.User(
                email=email,
                password_hash=password_hash,
                role=Role(role).value,
                created_at=self._clock(),
            )
            db.add(row)
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                raise ValidationError("email", "Email already registered")
            return User.model_validate(row)
        return await self._run(op)

    # Stores

    async def get_store(self, store_id: str) -> Optional[Store]:
        def op(db: Session):
            row = db.get(models.Store, store_id)
            return Store.model_validate(row) if row else None
        return await self._run(op)

    async def get_store_by_owner(self, owner_user_id: str) -> Optional[Store]:
        def op(db: Session):
            row = db.query(models.Store).filter(models.Store.owner_user_id == owner_user_id).first()
            return Store.model_validate(row) if row else None
        return await self._run(op)

    async def create_store(self, data: StoreCreate) -> Store:
        def op(db: Session):
            row = models.Store(created_at=self._clock(), **data.model_dump())
            db.add(row)
            db.flush()
            return Store.model_validate(row)
        return await self._run(op)

    async def update_store(self, store_id: str, updates: dict[str, Any]) -> Optional[Store]:
        def op(db: Session):
            row = db.get(models.Store, store_id)
            if row is None:
                return None
            for key, value in updates.items():
                setattr(row, key, value)
            db.flush()
            return Store.model_validate(row)
        return await self._run(op)

    async def delete_store(self, store_id: str) -> bool:
        def op(db: Session):
            post_ids = [
                post_id for (post_id,) in
                db.query(models.SalePost.id).filter(models.SalePost.store_id == store_id).all()
            ]
            for post_id in post_ids:
                self._delete_post_rows(db, post_id)
            deleted = db.query(models.Store).filter(models.Store.id == store_id).delete()
            return deleted > 0
        return await self._run(op)

    # Sale posts

    async def get_sale_post(self, post_id: str) -> Optional[SalePost]:
        def op(db: Session):
            row = db.get(models.SalePost, post_id)
            return SalePost.model_validate(row) if row else None
        return await self._run(op)

    async def list_sale_posts(
        self,
        store_id: Optional[str] = None,
        category: Optional[Category] = None,
        search: Optional[str] = None,
        active_only: bool = False,
        now: Optional[datetime] = None,
    ) -> list[SalePost]:
        def op(db: Session):
            query = db.query(models.SalePost)

            if store_id:
                query = query.filter(models.SalePost.store_id == store_id)
            if category:
                query = query.filter(models.SalePost.category == Category(category).value)
            if active_only:
                current = now or self._clock()
                query = query.filter(
                    models.SalePost.is_active.is_(True),
                    models.SalePost.starts_at <= current,
                    models.SalePost.ends_at >= current,
                )

            return [SalePost.model_validate(row) for row in query.all()]

        posts = await self._run(op)

        # SQLite's LIKE/lower() only fold ASCII, so text search runs here
        if search:
            posts = [p for p in posts if matches_search(p, search)]
        return posts

    async def create_sale_post(self, fields: dict[str, Any]) -> SalePost:
        def op(db: Session):
            values = dict(fields)
            values["category"] = Category(values["category"]).value
            row = models.SalePost(created_at=self._clock(), **values)
            db.add(row)
            db.flush()
            return SalePost.model_validate(row)
        return await self._run(op)

    async def update_sale_post(self, post_id: str, updates: dict[str, Any]) -> Optional[SalePost]:
        def op(db: Session):
            row = db.get(models.SalePost, post_id)
            if row is None:
                return None
            for key, value in updates.items():
                if key == "category":
                    value = Category(value).value
                setattr(row, key, value)
            db.flush()
            return SalePost.model_validate(row)
        return await self._run(op)

    @staticmethod
    def _delete_post_rows(db: Session, post_id: str) -> int:
        # Children before the post so foreign keys hold at every statement
        db.query(models.ViewEvent).filter(models.ViewEvent.sale_post_id == post_id).delete()
        db.query(models.Image).filter(models.Image.sale_post_id == post_id).delete()
        return db.query(models.SalePost).filter(models.SalePost.id == post_id).delete()

    async def delete_sale_post(self, post_id: str) -> bool:
        def op(db: Session):
            return self._delete_post_rows(db, post_id) > 0
        return await self._run(op)

    # Images

    async def list_images(self, post_id: str) -> list[Image]:
        def op(db: Session):
            rows = (
                db.query(models.Image)
                .filter(models.Image.sale_post_id == post_id)
                .order_by(models.Image.position)
                .all()
            )
            return [Image.model_validate(row) for row in rows]
        return await self._run(op)

    async def create_images(self, post_id: str, images: list[ImageIn]) -> list[Image]:
        def op(db: Session):
            start = (
                db.query(func.count(models.Image.id))
                .filter(models.Image.sale_post_id == post_id)
                .scalar()
            ) or 0
            rows = [
                models.Image(sale_post_id=post_id, url=img.url, alt=img.alt, position=start + i)
                for i, img in enumerate(images)
            ]
            db.add_all(rows)
            db.flush()
            return [Image.model_validate(row) for row in rows]
        return await self._run(op)

    async def replace_images(self, post_id: str, images: list[ImageIn]) -> list[Image]:
        def op(db: Session):
            db.query(models.Image).filter(models.Image.sale_post_id == post_id).delete()
            rows = [
                models.Image(sale_post_id=post_id, url=img.url, alt=img.alt, position=i)
                for i, img in enumerate(images)
            ]
            db.add_all(rows)
            db.flush()
            return [Image.model_validate(row) for row in rows]
        return await self._run(op)

    # View events

    async def create_view_event(self, post_id: str, ip_hash: Optional[str] = None) -> ViewEvent:
        def op(db: Session):
            row = models.ViewEvent(sale_post_id=post_id, ip_hash=ip_hash, viewed_at=self._clock())
            db.add(row)
            db.flush()
            return ViewEvent.model_validate(row)
        return await self._run(op)

    async def list_view_events(self, post_id: str) -> list[ViewEvent]:
        def op(db: Session):
            rows = (
                db.query(models.ViewEvent)
                .filter(models.ViewEvent.sale_post_id == post_id)
                .order_by(models.ViewEvent.viewed_at)
                .all()
            )
            return [ViewEvent.model_validate(row) for row in rows]
        return await self._run(op)

    async def count_view_events(self, post_id: str) -> int:
        def op(db: Session):
            return (
                db.query(func.count(models.ViewEvent.id))
                .filter(models.ViewEvent.sale_post_id == post_id)
                .scalar()
            ) or 0
        return await self._run(op)
