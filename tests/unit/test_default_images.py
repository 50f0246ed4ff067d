"""Unit tests for DefaultImageResolver."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from ami_provider.errors import CatalogQueryError, ParameterLookupError
from ami_provider.images.defaults import DefaultImageResolver
from ami_provider.images.interface import DefaultImage
from ami_provider.images.resolver import ImageResolver
from ami_provider.scheduling import LABEL_ARCH, OP_IN, Requirement, Requirements


def ssm_error(name="GetParameter"):
    return ClientError({"Error": {"Code": "ParameterNotFound", "Message": "missing"}}, name)


class StaticFamily:
    name = "Static"

    def __init__(self, *queries):
        self.queries = queries
        self.versions = []

    def default_images(self, kubernetes_version):
        self.versions.append(kubernetes_version)
        return [
            DefaultImage(
                query=query.format(version=kubernetes_version),
                requirements=Requirements([Requirement.new(LABEL_ARCH, OP_IN, arch)]),
            )
            for query, arch in zip(self.queries, ("amd64", "arm64"))
        ]


class TestDefaultImageResolver:
    """Test SSM-backed default image resolution."""

    @pytest.fixture
    def ec2(self):
        ec2 = MagicMock()
        ec2.get_paginator.return_value.paginate.return_value = iter(
            [
                {
                    "Images": [
                        {"ImageId": "ami-x86", "Name": "x86-image", "CreationDate": "2023-05-01T00:00:00Z"},
                        {"ImageId": "ami-arm", "Name": "arm-image", "CreationDate": "2023-04-01T00:00:00Z"},
                    ]
                }
            ]
        )
        return ec2

    @pytest.fixture
    def ssm(self):
        ssm = MagicMock()
        values = {"/x86/1.27": "ami-x86", "/arm/1.27": "ami-arm"}

        def get_parameter(Name):
            if Name not in values:
                raise ssm_error()
            return {"Parameter": {"Name": Name, "Value": values[Name]}}

        ssm.get_parameter.side_effect = get_parameter
        return ssm

    @pytest.fixture
    def resolver(self, ec2, ssm):
        return DefaultImageResolver(ssm, ImageResolver(ec2, page_size=500))

    def test_resolves_and_backfills(self, resolver, ec2):
        family = StaticFamily("/x86/{version}", "/arm/{version}")
        images = resolver.resolve(family, "1.27")

        assert family.versions == ["1.27"]
        assert images.ids() == ["ami-x86", "ami-arm"]
        assert images[0].name == "x86-image"
        assert images[0].creation_date == "2023-05-01T00:00:00Z"
        assert images[1].requirements.get(LABEL_ARCH).any() == "arm64"
        ec2.get_paginator.return_value.paginate.assert_called_once_with(
            Filters=[{"Name": "image-id", "Values": ["ami-arm", "ami-x86"]}],
            MaxResults=500,
        )

    def test_failed_lookup_is_skipped(self, resolver):
        family = StaticFamily("/x86/{version}", "/missing/{version}")
        images = resolver.resolve(family, "1.27")
        assert images.ids() == ["ami-x86"]

    def test_failed_lookup_is_logged(self, resolver, caplog):
        family = StaticFamily("/missing/{version}")
        with caplog.at_level("ERROR", logger="ami_provider.images.defaults"):
            resolver.resolve(family, "1.27")
        assert "/missing/1.27" in caplog.text

    def test_no_resolved_ids_skips_describe(self, resolver, ec2):
        images = resolver.resolve(StaticFamily("/missing/{version}"), "1.27")
        assert len(images) == 0
        ec2.get_paginator.assert_not_called()

    def test_describe_failure_is_fatal(self, ssm):
        ec2 = MagicMock()
        ec2.get_paginator.return_value.paginate.side_effect = ClientError(
            {"Error": {"Code": "RequestLimitExceeded", "Message": "slow down"}}, "DescribeImages"
        )
        resolver = DefaultImageResolver(ssm, ImageResolver(ec2, page_size=500))
        with pytest.raises(CatalogQueryError):
            resolver.resolve(StaticFamily("/x86/{version}"), "1.27")

    def test_unmatched_ids_keep_empty_metadata(self, ssm):
        ec2 = MagicMock()
        ec2.get_paginator.return_value.paginate.return_value = iter([{"Images": []}])
        resolver = DefaultImageResolver(ssm, ImageResolver(ec2, page_size=500))
        images = resolver.resolve(StaticFamily("/x86/{version}"), "1.27")
        assert images[0].image_id == "ami-x86"
        assert images[0].name == ""
        assert images[0].creation_date == ""


class TestResolveParameter:
    """Test single SSM parameter lookups."""

    def test_returns_value(self):
        ssm = MagicMock()
        ssm.get_parameter.return_value = {"Parameter": {"Value": "ami-123"}}
        resolver = DefaultImageResolver(ssm, ImageResolver(MagicMock(), page_size=500))
        assert resolver.resolve_parameter("/some/param") == "ami-123"
        ssm.get_parameter.assert_called_once_with(Name="/some/param")

    def test_error_wrapped(self):
        ssm = MagicMock()
        ssm.get_parameter.side_effect = ssm_error()
        resolver = DefaultImageResolver(ssm, ImageResolver(MagicMock(), page_size=500))
        with pytest.raises(ParameterLookupError, match="/some/param"):
            resolver.resolve_parameter("/some/param")

    def test_empty_value(self):
        ssm = MagicMock()
        ssm.get_parameter.return_value = {"Parameter": {}}
        resolver = DefaultImageResolver(ssm, ImageResolver(MagicMock(), page_size=500))
        with pytest.raises(ParameterLookupError):
            resolver.resolve_parameter("/some/param")
