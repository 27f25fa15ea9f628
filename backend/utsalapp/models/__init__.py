from utsalapp.models.user import User
from utsalapp.models.store import Store
from utsalapp.models.sale_post import SalePost, Image, ViewEvent

__all__ = [
    "User",
    "Store",
    "SalePost",
    "Image",
    "ViewEvent",
]
