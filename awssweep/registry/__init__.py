"""Resource descriptor registry.

Classes:
    ResourceRegistry: Lookup table of resource descriptors with dependency validation
    ResourceDescriptor: How to list and normalize one resource type
    DependentDescriptor: How a parent scopes the listing of one dependent type
    ListOperation: Remote list/describe call bound to a service and method
"""

from __future__ import annotations

from .descriptor import DependentDescriptor, DetailLookup, ListOperation, ResourceDescriptor, ResourceRegistry

__all__ = [
    "DependentDescriptor",
    "DetailLookup",
    "ListOperation",
    "ResourceDescriptor",
    "ResourceRegistry",
]
