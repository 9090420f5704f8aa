"""数据模型"""
from .user import User
from .link import Link
from .collection import Collection, CollectionLink

__all__ = [
    "User",
    "Link",
    "Collection", "CollectionLink",
]
