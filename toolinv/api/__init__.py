"""
API module for the tool inventory.

Provides REST API endpoints for the inventory UI.
"""
from toolinv.api.models import (
    ToolPayload,
    ToolWriteResponse,
    ToolListResponse,
    SearchRequest,
    SearchResponse,
    FromTextRequest,
    CredentialsRequest,
    TokenResponse,
)

__all__ = [
    "ToolPayload",
    "ToolWriteResponse",
    "ToolListResponse",
    "SearchRequest",
    "SearchResponse",
    "FromTextRequest",
    "CredentialsRequest",
    "TokenResponse",
]
