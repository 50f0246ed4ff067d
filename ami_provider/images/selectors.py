"""Compile image selector terms into DescribeImages query groups."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .. import config as ap_config
from .interface import Filter, ImageSelectorTerm, QueryGroup

FILTER_IMAGE_ID = "image-id"
FILTER_NAME = "name"
FILTER_TAG_KEY = "tag-key"


def split_comma_separated(value: str) -> List[str]:
    """Split "a, b,c" into ["a", "b", "c"], dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def compile_selector_terms(
    terms: Sequence[ImageSelectorTerm],
    default_owners: Optional[Sequence[str]] = None,
) -> List[QueryGroup]:
    """Compile selector terms into query groups.

    Every name/tag term becomes its own group. All ID terms share a single
    image-id group, appended after the others when at least one exists.

    Args:
        terms: Selector terms in declaration order
        default_owners: Owners for terms that name none (config default if None)

    Returns:
        Query groups in the order they should be sent
    """
    if default_owners is None:
        default_owners = ap_config.default_owners()

    groups: List[QueryGroup] = []
    image_ids: List[str] = []
    for term in terms:
        if term.id:
            image_ids.append(term.id)
            continue

        filters: List[Filter] = []
        if term.name:
            filters.append(Filter(FILTER_NAME, (term.name,)))
        for key, value in term.tags.items():
            if value == "*":
                filters.append(Filter(FILTER_TAG_KEY, (key,)))
            else:
                filters.append(Filter(f"tag:{key}", tuple(split_comma_separated(value))))
        owners = (term.owner,) if term.owner else tuple(default_owners)
        groups.append(QueryGroup(filters=tuple(filters), owners=owners))

    if image_ids:
        groups.append(QueryGroup(filters=(Filter(FILTER_IMAGE_ID, tuple(image_ids)),)))
    return groups
