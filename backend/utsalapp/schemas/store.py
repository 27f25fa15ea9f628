from pydantic import BaseModel
from datetime import datetime


class StoreBase(BaseModel):
    name: str
    description: str | None = None
    logo_url: str | None = None
    address: str | None = None
    geo_lat: float | None = None
    geo_lng: float | None = None
    phone: str | None = None
    website: str | None = None


class StoreCreate(StoreBase):
    owner_user_id: str


class StoreUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    logo_url: str | None = None
    address: str | None = None
    geo_lat: float | None = None
    geo_lng: float | None = None
    phone: str | None = None
    website: str | None = None


class Store(StoreBase):
    id: str
    owner_user_id: str
    created_at: datetime

    class Config:
        from_attributes = True
        frozen = True
