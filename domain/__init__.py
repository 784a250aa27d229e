"""
FOLLOWGRAPH DOMAIN LAYER

This module provides:
- GraphService: the policy layer over FollowGraph (sigil checks, no
  self-follows, must-exist-before-relate, dirty tracking, cached SCCs)

Usage:
    from domain import GraphService

    service = GraphService()
    service.load_from_file(Path("network.txt"))
    result = service.compute_strongly_connected_components()
"""
from .graph_service import (
    GraphService,
    GraphServiceError,
    DuplicateUserError,
    UserNotFoundError,
    SelfRelationError,
    DuplicateRelationError,
    RelationNotFoundError,
    NoAssociatedFileError,
)

__all__ = [
    "GraphService",
    "GraphServiceError",
    "DuplicateUserError",
    "UserNotFoundError",
    "SelfRelationError",
    "DuplicateRelationError",
    "RelationNotFoundError",
    "NoAssociatedFileError",
]
