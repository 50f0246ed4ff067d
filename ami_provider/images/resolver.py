"""Resolve selector query groups against the EC2 image catalog."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from .. import config as ap_config
from ..cache import hash_structure
from ..context import ResolutionContext, background
from ..errors import CatalogQueryError
from ..scheduling import LABEL_ARCH, WELL_KNOWN_ARCHITECTURES
from .extract import requirements_from_image
from .interface import Image, ImageSet, QueryGroup, parse_creation_date

logger = logging.getLogger(__name__)


def _supersedes(candidate: Mapping[str, Any], existing: Image) -> bool:
    """Whether candidate should replace existing for the same requirements.

    Newer creation dates win. On equal dates the lexicographically greater
    or equal name wins.
    """
    candidate_time = parse_creation_date(candidate.get("CreationDate"))
    existing_time = existing.created_at
    if candidate_time != existing_time:
        return candidate_time > existing_time
    return (candidate.get("Name") or "") >= existing.name


class ImageResolver:
    """Paginated DescribeImages queries with cross-group deduplication.

    Only this class and DefaultImageResolver talk to the EC2 API.
    """

    def __init__(self, ec2: Any, page_size: Optional[int] = None) -> None:
        """Initialize ImageResolver.

        Args:
            ec2: boto3 EC2 client (must provide get_paginator("describe_images"))
            page_size: MaxResults per page (config default if None)
        """
        self.ec2 = ec2
        self.page_size = page_size or ap_config.describe_page_size()

    def describe_images(
        self, request: Dict[str, Any], ctx: Optional[ResolutionContext] = None
    ) -> Iterator[Dict[str, Any]]:
        """Yield every image record matched by one DescribeImages request.

        Raises:
            CatalogQueryError: the EC2 API call failed
            ResolutionCancelled: ctx was cancelled between pages
        """
        ctx = ctx or background()
        ctx.check()
        try:
            paginator = self.ec2.get_paginator("describe_images")
            for page in paginator.paginate(**request):
                for record in page.get("Images", []):
                    yield record
                ctx.check()
        except (ClientError, BotoCoreError) as exc:
            raise CatalogQueryError(f"describing images, {exc}", cause=exc) from exc

    def resolve(
        self, groups: Sequence[QueryGroup], ctx: Optional[ResolutionContext] = None
    ) -> ImageSet:
        """Query every group and collapse images with identical requirements.

        A failure in any group aborts the whole call.

        Args:
            groups: Compiled query groups
            ctx: Cancellation context

        Returns:
            Unsorted ImageSet with one image per distinct requirement set
        """
        images: Dict[str, Image] = {}
        for group in groups:
            for record in self.describe_images(group.to_request(self.page_size), ctx):
                requirements = requirements_from_image(record)
                if requirements.get(LABEL_ARCH).any() not in WELL_KNOWN_ARCHITECTURES:
                    logger.debug(
                        "Skipping image %s with unsupported architecture %s",
                        record.get("ImageId"),
                        record.get("Architecture"),
                    )
                    continue
                key = hash_structure(requirements.node_selector_requirements())
                existing = images.get(key)
                if existing is not None and not _supersedes(record, existing):
                    continue
                images[key] = Image(
                    image_id=record.get("ImageId", ""),
                    name=record.get("Name") or "",
                    creation_date=record.get("CreationDate") or "",
                    requirements=requirements,
                )
        return ImageSet(images.values())
