"""Client and wire schemas for the invoice service."""

from .client import (
    ServiceClient,
    ServiceClientError,
    ServiceConnectionError,
    ServiceAPIError,
)

__all__ = [
    "ServiceClient",
    "ServiceClientError",
    "ServiceConnectionError",
    "ServiceAPIError",
]
