from utsalapp.storage.base import Storage
from utsalapp.storage.memory import MemoryStorage
from utsalapp.storage.sql import SqlStorage

__all__ = [
    "Storage",
    "MemoryStorage",
    "SqlStorage",
]
