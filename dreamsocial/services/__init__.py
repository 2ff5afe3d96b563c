"""
Service layer exports.
Provides business logic for the relationship graph.
"""
from dreamsocial.services.relationship_service import (
    RelationshipService,
    RelationshipQueryError,
    CANNOT_FOLLOW
)
from dreamsocial.services.relationship_cache import RelationshipCache
from dreamsocial.services.directory_service import UserDirectoryService

__all__ = [
    "RelationshipService",
    "RelationshipQueryError",
    "CANNOT_FOLLOW",
    "RelationshipCache",
    "UserDirectoryService",
]
