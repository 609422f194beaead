"""Templated bulk creation of accounts and their linked services."""

from vaultkeeper.bulk.generator import expand_bulk_request, label_collisions, validate_bulk_request
from vaultkeeper.bulk.models import BulkAccountConfig, BulkCreateRequest, ServiceLinkConfig

__all__ = [
    "BulkAccountConfig",
    "BulkCreateRequest",
    "ServiceLinkConfig",
    "expand_bulk_request",
    "label_collisions",
    "validate_bulk_request",
]
