"""Resolve and cache the machine images eligible for new cluster nodes."""

from .context import ResolutionContext
from .errors import (
    CacheKeyError,
    CatalogQueryError,
    ImageResolutionError,
    ParameterLookupError,
    ResolutionCancelled,
    UnknownImageFamilyError,
    VersionDiscoveryError,
)
from .images import ImageSelectorTerm, ImageSet, InstanceType, NodeClass, Provider

__all__ = [
    "CacheKeyError",
    "CatalogQueryError",
    "ImageResolutionError",
    "ImageSelectorTerm",
    "ImageSet",
    "InstanceType",
    "NodeClass",
    "ParameterLookupError",
    "Provider",
    "ResolutionCancelled",
    "ResolutionContext",
    "UnknownImageFamilyError",
    "VersionDiscoveryError",
]
