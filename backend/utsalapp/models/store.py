import uuid

from sqlalchemy import Column, String, DateTime, Text, Float, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from utsalapp.database import Base


class Store(Base):
    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text)
    logo_url = Column(Text)
    address = Column(String(255))
    geo_lat = Column(Float)
    geo_lng = Column(Float)
    phone = Column(String(50))
    website = Column(Text)
    owner_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Relationships
    owner = relationship("User", back_populates="store")
    sale_posts = relationship("SalePost", back_populates="store")
