"""Pydantic Schemas"""
from .user import UserCreate, UserLogin, UserResponse, Token, RefreshTokenRequest
from .link import LinkCreate, LinkResponse, LinkEnvelope, LinkListResponse, MessageResponse
from .meta import UrlMetaRequest, LinkMetadata
from .collection import (
    CollectionCreate,
    CollectionResponse,
    SharedCollectionResponse,
    CollectionEnvelope,
    SharedCollectionEnvelope,
)

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "Token", "RefreshTokenRequest",
    "LinkCreate", "LinkResponse", "LinkEnvelope", "LinkListResponse", "MessageResponse",
    "UrlMetaRequest", "LinkMetadata",
    "CollectionCreate", "CollectionResponse", "SharedCollectionResponse",
    "CollectionEnvelope", "SharedCollectionEnvelope",
]
