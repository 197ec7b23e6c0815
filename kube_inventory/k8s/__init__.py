"""Kubernetes interaction module."""

from .client import ClusterClient, RateLimiter
from .discovery import DiscoveryCache, ResourceTypeResolver
from .lister import PaginatedLister
from .registry import CUSTOM_RESOURCE_TABLE, table_for
from .retry import RetryExecutor, RetryPolicy
from .scanner import ResourceScanner, ScanResult

__all__ = [
    "ClusterClient",
    "RateLimiter",
    "DiscoveryCache",
    "ResourceTypeResolver",
    "PaginatedLister",
    "CUSTOM_RESOURCE_TABLE",
    "table_for",
    "RetryExecutor",
    "RetryPolicy",
    "ResourceScanner",
    "ScanResult",
]
