from pydantic import BaseModel, EmailStr
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    store = "store"
    admin = "admin"


class User(BaseModel):
    id: str
    email: str
    password_hash: str
    role: Role
    created_at: datetime

    class Config:
        from_attributes = True
        frozen = True


class UserOut(BaseModel):
    id: str
    email: str
    role: Role
    created_at: datetime

    class Config:
        from_attributes = True


class StoreRegister(BaseModel):
    email: EmailStr
    password: str
    store_name: str


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Caller(BaseModel):
    """Already-authenticated identity handed to the core by the HTTP layer."""
    user_id: str
    role: Role
    store_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin
