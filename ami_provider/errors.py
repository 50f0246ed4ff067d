"""Exceptions raised while resolving images."""

from __future__ import annotations

from typing import Optional


class ImageResolutionError(RuntimeError):
    """Base class for failures that abort an image resolution call."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class CatalogQueryError(ImageResolutionError):
    """Describing images in the catalog failed."""


class ParameterLookupError(ImageResolutionError):
    """A parameter store lookup for a default image failed."""


class VersionDiscoveryError(ImageResolutionError):
    """The orchestration plane version could not be discovered."""


class CacheKeyError(ImageResolutionError):
    """A cache key could not be derived from the given structure."""


class ResolutionCancelled(ImageResolutionError):
    """The caller cancelled the resolution or its deadline passed."""


class UnknownImageFamilyError(ImageResolutionError, ValueError):
    """No image family is registered under the requested name."""
