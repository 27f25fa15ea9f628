from utsalapp.schemas.user import User, UserOut, Role, Caller, StoreRegister, UserLogin
from utsalapp.schemas.store import Store, StoreCreate, StoreUpdate
from utsalapp.schemas.sale_post import (
    Category,
    SortBy,
    Image,
    ImageIn,
    ViewEvent,
    SalePost,
    SalePostCreate,
    SalePostUpdate,
    SalePostWithDetails,
    SalePostsList,
    FilterSpec,
)

__all__ = [
    "User", "UserOut", "Role", "Caller", "StoreRegister", "UserLogin",
    "Store", "StoreCreate", "StoreUpdate",
    "Category", "SortBy", "Image", "ImageIn", "ViewEvent",
    "SalePost", "SalePostCreate", "SalePostUpdate", "SalePostWithDetails",
    "SalePostsList", "FilterSpec",
]
