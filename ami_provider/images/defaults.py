"""Resolve a family's default images through SSM parameters."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..context import ResolutionContext, background
from ..errors import ParameterLookupError
from .interface import Image, ImageFamily, ImageSet
from .resolver import ImageResolver
from .selectors import FILTER_IMAGE_ID

logger = logging.getLogger(__name__)


class DefaultImageResolver:
    """Resolves family default images.

    Evaluation order:
    1. Ask the family for its default image descriptors
    2. Look up each descriptor's SSM parameter (failures are logged and skipped)
    3. Describe the resolved IDs once to fill in name and creation date
    """

    def __init__(self, ssm: Any, images: ImageResolver) -> None:
        """Initialize DefaultImageResolver.

        Args:
            ssm: boto3 SSM client (must provide get_parameter)
            images: ImageResolver whose describe_images() backfills metadata
        """
        self.ssm = ssm
        self.images = images

    def resolve_parameter(self, query: str, ctx: Optional[ResolutionContext] = None) -> str:
        """Return the image ID stored in an SSM parameter.

        Raises:
            ParameterLookupError: the lookup failed or returned no value
        """
        ctx = ctx or background()
        ctx.check()
        try:
            output = self.ssm.get_parameter(Name=query)
        except (ClientError, BotoCoreError) as exc:
            raise ParameterLookupError(f"getting ssm parameter {query!r}, {exc}", cause=exc) from exc
        value = (output.get("Parameter") or {}).get("Value")
        if not value:
            raise ParameterLookupError(f"ssm parameter {query!r} has no value")
        return value

    def resolve(
        self,
        family: ImageFamily,
        kubernetes_version: str,
        ctx: Optional[ResolutionContext] = None,
    ) -> ImageSet:
        """Resolve the default images of family for kubernetes_version.

        Raises:
            CatalogQueryError: describing the resolved IDs failed
            ResolutionCancelled: ctx was cancelled
        """
        ctx = ctx or background()
        resolved: List[Image] = []
        for default in family.default_images(kubernetes_version):
            try:
                image_id = self.resolve_parameter(default.query, ctx)
            except ParameterLookupError as exc:
                logger.error("Discovering images from ssm for query=%s: %s", default.query, exc)
                continue
            resolved.append(Image(image_id=image_id, requirements=default.requirements))

        if not resolved:
            return ImageSet()

        metadata: Dict[str, Dict[str, Any]] = {}
        request = {
            "Filters": [{"Name": FILTER_IMAGE_ID, "Values": sorted({i.image_id for i in resolved})}],
            "MaxResults": self.images.page_size,
        }
        for record in self.images.describe_images(request, ctx):
            metadata[record.get("ImageId", "")] = record

        return ImageSet(
            Image(
                image_id=image.image_id,
                name=metadata.get(image.image_id, {}).get("Name") or "",
                creation_date=metadata.get(image.image_id, {}).get("CreationDate") or "",
                requirements=image.requirements,
            )
            for image in resolved
        )
