"""Data model and protocols shared by the image resolvers and the provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from ..scheduling import Requirements

# Comparison value for creation dates that are missing or unparsable
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

SUMMARY_LIMIT = 25


def parse_creation_date(value: Optional[str]) -> datetime:
    """Parse an RFC 3339 creation date, returning ZERO_TIME on failure."""
    if not value:
        return ZERO_TIME
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return ZERO_TIME
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Image:
    """A resolved machine image and the requirements nodes booted from it satisfy."""

    image_id: str
    name: str = ""
    creation_date: str = ""
    requirements: Requirements = field(default_factory=Requirements, compare=False)

    @property
    def created_at(self) -> datetime:
        return parse_creation_date(self.creation_date)


@dataclass(frozen=True)
class InstanceType:
    """Compute shape offered to nodes, described by the labels it carries."""

    name: str
    requirements: Requirements = field(default_factory=Requirements, compare=False)


class ImageSet(tuple):
    """Immutable ordered collection of Image.

    Cached sets are shared between callers, so operations that reorder
    return a new ImageSet instead of mutating.
    """

    def __new__(cls, images: Iterable[Image] = ()) -> "ImageSet":
        return super().__new__(cls, images)

    def sort(self) -> "ImageSet":
        """Newest first; unparsable dates sort last; name descending breaks ties."""
        return ImageSet(
            sorted(self, key=lambda image: (image.created_at, image.name), reverse=True)
        )

    def ids(self) -> List[str]:
        return [image.image_id for image in self]

    def map_to_instance_types(
        self, instance_types: Iterable[InstanceType]
    ) -> Dict[str, List[InstanceType]]:
        """Map image IDs to the instance types for which they are the first compatible image.

        Expects the set to be sorted, so that first means most recent.
        Instance types with no compatible image are left out.
        """
        mapping: Dict[str, List[InstanceType]] = {}
        for instance_type in instance_types:
            for image in self:
                if instance_type.requirements.compatible(image.requirements):
                    mapping.setdefault(image.image_id, []).append(instance_type)
                    break
        return mapping

    def __str__(self) -> str:
        ids = self.ids()
        if len(ids) > SUMMARY_LIMIT:
            return f"{', '.join(ids[:SUMMARY_LIMIT])} and {len(ids) - SUMMARY_LIMIT} other(s)"
        return ", ".join(ids)

    def __repr__(self) -> str:
        return f"ImageSet([{self}])"


@dataclass(frozen=True)
class ImageSelectorTerm:
    """User constraint selecting images either by ID or by name/owner/tags.

    - id: exact image ID; when set the other fields are ignored
    - name: image name, may contain catalog wildcards
    - owner: account ID or alias ("self", "amazon")
    - tags: tag key -> value; "*" matches any value, commas separate alternatives
    """

    id: Optional[str] = None
    name: Optional[str] = None
    owner: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Filter:
    """One DescribeImages filter."""

    name: str
    values: Sequence[str]

    def to_request(self) -> Dict[str, Any]:
        return {"Name": self.name, "Values": list(self.values)}


@dataclass(frozen=True)
class QueryGroup:
    """Filters and owners sent together in one paginated DescribeImages query."""

    filters: Sequence[Filter] = ()
    owners: Sequence[str] = ()

    def to_request(self, page_size: int) -> Dict[str, Any]:
        """Build DescribeImages keyword arguments.

        Empty filter and owner lists are left out of the request; the API
        rejects an empty Filters argument.
        """
        request: Dict[str, Any] = {"MaxResults": page_size}
        if self.filters:
            request["Filters"] = [f.to_request() for f in self.filters]
        if self.owners:
            request["Owners"] = list(self.owners)
        return request


@dataclass(frozen=True)
class DefaultImage:
    """A family's default image: a parameter store query and static requirements."""

    query: str
    requirements: Requirements = field(default_factory=Requirements)


@dataclass(frozen=True)
class NodeClass:
    """The subset of a node class the provider reads."""

    name: str
    image_family: Optional[str] = None
    image_selector_terms: Sequence[ImageSelectorTerm] = ()
    is_node_template: bool = False


class ImageFamily(Protocol):
    """Default image policy of one OS distribution lineage."""

    name: str

    def default_images(self, kubernetes_version: str) -> List[DefaultImage]:  # pragma: no cover - protocol
        """Default image descriptors for the given "major.minor" version."""
        ...


class VersionInfo(Protocol):
    major: str
    minor: str


class VersionAPI(Protocol):
    """Orchestration API version discovery (kubernetes.client.VersionApi compatible)."""

    def get_code(self) -> VersionInfo:  # pragma: no cover - protocol
        ...
