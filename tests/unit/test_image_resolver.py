"""Unit tests for ImageResolver."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from ami_provider.context import ResolutionContext
from ami_provider.errors import CatalogQueryError, ResolutionCancelled
from ami_provider.images.interface import Filter, QueryGroup
from ami_provider.images.resolver import ImageResolver
from ami_provider.scheduling import LABEL_ARCH, LABEL_INSTANCE_GPU_COUNT


def image(image_id, name="", created="", arch="x86_64", tags=None):
    record = {"ImageId": image_id, "Name": name, "CreationDate": created, "Architecture": arch}
    if tags:
        record["Tags"] = [{"Key": k, "Value": v} for k, v in tags.items()]
    return record


def make_ec2(*pages_per_call):
    """EC2 mock whose paginator yields the given page lists call by call."""
    ec2 = MagicMock()
    calls = iter(pages_per_call)
    ec2.get_paginator.return_value.paginate.side_effect = lambda **kwargs: iter(next(calls))
    return ec2


def pages(*records):
    return [{"Images": list(records)}]


OWNER_GROUP = QueryGroup(filters=(), owners=("self",))
NAME_GROUP = QueryGroup(filters=(Filter("name", ("my-image",)),), owners=("self", "amazon"))


class TestImageResolver:
    """Test paginated resolution and dedup."""

    def test_resolves_all_pages(self):
        ec2 = make_ec2(
            [
                {"Images": [image("ami-1", "a", arch="x86_64")]},
                {"Images": [image("ami-2", "b", arch="arm64")]},
            ]
        )
        images = ImageResolver(ec2, page_size=500).resolve([NAME_GROUP])

        assert sorted(images.ids()) == ["ami-1", "ami-2"]
        ec2.get_paginator.assert_called_with("describe_images")
        ec2.get_paginator.return_value.paginate.assert_called_once_with(
            MaxResults=500,
            Filters=[{"Name": "name", "Values": ["my-image"]}],
            Owners=["self", "amazon"],
        )

    def test_empty_filters_omitted(self):
        ec2 = make_ec2(pages())
        ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])

        kwargs = ec2.get_paginator.return_value.paginate.call_args.kwargs
        assert "Filters" not in kwargs
        assert kwargs["Owners"] == ["self"]

    def test_unsupported_architecture_dropped(self):
        ec2 = make_ec2(pages(image("ami-1", arch="exotic-arch"), image("ami-2", arch="arm64")))
        images = ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])
        assert images.ids() == ["ami-2"]

    def test_dedup_keeps_newer(self):
        ec2 = make_ec2(
            pages(
                image("ami-new", "zzz-old-name", created="2023-06-01T00:00:00.000Z"),
                image("ami-old", "aaa", created="2023-01-01T00:00:00.000Z"),
            )
        )
        images = ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])
        assert images.ids() == ["ami-new"]

    def test_dedup_newer_candidate_replaces(self):
        ec2 = make_ec2(
            pages(
                image("ami-old", "zzz", created="2023-01-01T00:00:00.000Z"),
                image("ami-new", "aaa", created="2023-06-01T00:00:00.000Z"),
            )
        )
        images = ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])
        assert images.ids() == ["ami-new"]

    @pytest.mark.parametrize("order", [("ami-a", "ami-b"), ("ami-b", "ami-a")])
    def test_equal_dates_prefer_greater_name(self, order):
        created = "2023-01-01T00:00:00Z"
        ec2 = make_ec2(pages(*(image(i, i, created=created) for i in order)))
        images = ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])
        assert images.ids() == ["ami-b"]

    def test_unparsable_dates_do_not_crash(self):
        ec2 = make_ec2(
            pages(
                image("ami-1", "a", created="not-a-date"),
                image("ami-2", "b", created=""),
            )
        )
        images = ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])
        assert images.ids() == ["ami-2"]

    def test_distinct_requirements_kept(self):
        ec2 = make_ec2(
            pages(
                image("ami-cpu", arch="x86_64"),
                image("ami-gpu", arch="x86_64", tags={LABEL_INSTANCE_GPU_COUNT: "1"}),
                image("ami-arm", arch="arm64"),
            )
        )
        images = ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])
        assert sorted(images.ids()) == ["ami-arm", "ami-cpu", "ami-gpu"]
        assert len({hash(i.requirements) for i in images}) == 3

    def test_dedup_across_groups(self):
        ec2 = make_ec2(
            pages(image("ami-1", "a", created="2023-01-01T00:00:00Z")),
            pages(image("ami-2", "b", created="2023-02-01T00:00:00Z")),
        )
        images = ImageResolver(ec2, page_size=500).resolve([NAME_GROUP, OWNER_GROUP])
        assert images.ids() == ["ami-2"]
        assert images[0].requirements.get(LABEL_ARCH).any() == "amd64"

    def test_describe_error_aborts(self):
        ec2 = MagicMock()
        ec2.get_paginator.return_value.paginate.side_effect = ClientError(
            {"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}}, "DescribeImages"
        )
        with pytest.raises(CatalogQueryError) as exc_info:
            ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP])
        assert isinstance(exc_info.value.__cause__, ClientError)

    def test_error_in_later_group_returns_nothing(self):
        ec2 = MagicMock()
        responses = iter([pages(image("ami-1")), None])

        def paginate(**kwargs):
            result = next(responses)
            if result is None:
                raise ClientError({"Error": {"Code": "Throttling", "Message": "slow"}}, "DescribeImages")
            return iter(result)

        ec2.get_paginator.return_value.paginate.side_effect = paginate
        with pytest.raises(CatalogQueryError):
            ImageResolver(ec2, page_size=500).resolve([NAME_GROUP, OWNER_GROUP])

    def test_cancelled_context(self):
        ec2 = make_ec2(pages(image("ami-1")))
        ctx = ResolutionContext()
        ctx.cancel()
        with pytest.raises(ResolutionCancelled):
            ImageResolver(ec2, page_size=500).resolve([OWNER_GROUP], ctx)
        ec2.get_paginator.assert_not_called()

    def test_resolving_twice_is_stable(self):
        records = pages(
            image("ami-1", "a", created="2023-01-01T00:00:00Z"),
            image("ami-2", "b", created="2023-01-01T00:00:00Z"),
            image("ami-3", "c", arch="arm64"),
        )
        ec2 = make_ec2(records, records)
        resolver = ImageResolver(ec2, page_size=500)
        first = resolver.resolve([OWNER_GROUP])
        second = resolver.resolve([OWNER_GROUP])
        assert sorted(first.ids()) == sorted(second.ids()) == ["ami-2", "ami-3"]
