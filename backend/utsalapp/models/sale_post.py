import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from utsalapp.database import Base


class SalePost(Base):
    """Time-bounded discount announcement published by a store."""
    __tablename__ = "sale_posts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id = Column(
        String(36),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(20), nullable=False, index=True)

    # Pricing (ISK, no minor units)
    price_original = Column(Float, nullable=False)
    price_sale = Column(Float, nullable=False)

    # Active window
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    # Relationships
    store = relationship("Store", back_populates="sale_posts")
    images = relationship(
        "Image",
        back_populates="sale_post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Image.position",
    )

    __table_args__ = (
        CheckConstraint("price_original > 0", name="ck_sale_post_original_positive"),
        CheckConstraint("price_sale > 0", name="ck_sale_post_sale_positive"),
        CheckConstraint("price_sale < price_original", name="ck_sale_post_price_order"),
        CheckConstraint("ends_at > starts_at", name="ck_sale_post_window"),
        CheckConstraint(
            "category IN ('fatnad', 'husgogn', 'raftaeki', 'matvorur', 'annad')",
            name="ck_sale_post_category_valid",
        ),
    )


class Image(Base):
    __tablename__ = "images"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_post_id = Column(
        String(36),
        ForeignKey("sale_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = Column(Text, nullable=False)
    alt = Column(String(255))
    # Insertion order within the post
    position = Column(Integer, nullable=False, default=0)

    sale_post = relationship("SalePost", back_populates="images")


class ViewEvent(Base):
    """One recorded impression of a post's detail page. Append-only."""
    __tablename__ = "view_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_post_id = Column(
        String(36),
        ForeignKey("sale_posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    viewed_at = Column(DateTime, nullable=False, server_default=func.now())
    ip_hash = Column(String(64))

    __table_args__ = (
        Index("ix_view_events_post", "sale_post_id"),
    )
