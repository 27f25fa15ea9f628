import uuid

from sqlalchemy import Column, String, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from utsalapp.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)  # 'store', 'admin'
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Relationships
    store = relationship("Store", back_populates="owner", uselist=False)

    __table_args__ = (
        CheckConstraint("role IN ('store', 'admin')", name="ck_user_role_valid"),
    )
