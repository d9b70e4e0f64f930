"""
Client package - data access for operator tools and scripts.
"""

from forkcheck.client.api_client import ApiSession, ForkcheckClient
from forkcheck.client.config import ClientSettings, DataSource
from forkcheck.client.errors import (
    ApiError,
    AuthenticationError,
    ClientError,
    ConflictError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    ServerError,
    ValidationError,
)
from forkcheck.client.offline import LocalCache, OfflineRepository, OnlineRepository, open_data_source

__all__ = [
    "ApiSession",
    "ForkcheckClient",
    "ClientSettings",
    "DataSource",
    "ApiError",
    "AuthenticationError",
    "ClientError",
    "ConflictError",
    "NetworkError",
    "NotFoundError",
    "PermissionDeniedError",
    "ServerError",
    "ValidationError",
    "LocalCache",
    "OfflineRepository",
    "OnlineRepository",
    "open_data_source",
]
