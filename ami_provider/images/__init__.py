"""Image resolution for node classes.

Boundary rules:
- Only ImageResolver and DefaultImageResolver call the EC2 and SSM APIs.
- Provider is the entry point; it owns caching and change reporting.
"""

from .defaults import DefaultImageResolver
from .extract import requirements_from_image
from .families import IMAGE_FAMILIES, get_image_family
from .interface import (
    DefaultImage,
    Filter,
    Image,
    ImageFamily,
    ImageSelectorTerm,
    ImageSet,
    InstanceType,
    NodeClass,
    QueryGroup,
    VersionAPI,
)
from .provider import Provider
from .resolver import ImageResolver
from .selectors import compile_selector_terms

__all__ = [
    "DefaultImage",
    "DefaultImageResolver",
    "Filter",
    "IMAGE_FAMILIES",
    "Image",
    "ImageFamily",
    "ImageResolver",
    "ImageSelectorTerm",
    "ImageSet",
    "InstanceType",
    "NodeClass",
    "Provider",
    "QueryGroup",
    "VersionAPI",
    "compile_selector_terms",
    "get_image_family",
    "requirements_from_image",
]
