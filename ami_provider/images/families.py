"""Default image policies per image family.

Each family maps a kubernetes version to the public SSM parameters that
name its current default images, together with the requirements those
images satisfy.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .. import config as ap_config
from ..errors import UnknownImageFamilyError
from ..scheduling import (
    ARCH_AMD64,
    ARCH_ARM64,
    LABEL_ARCH,
    LABEL_INSTANCE_ACCELERATOR_COUNT,
    LABEL_INSTANCE_GPU_COUNT,
    LABEL_OS,
    LABEL_WINDOWS_BUILD,
    OP_DOES_NOT_EXIST,
    OP_EXISTS,
    OP_IN,
    Requirement,
    Requirements,
)
from .interface import DefaultImage, ImageFamily


def _arch(arch: str) -> Requirement:
    return Requirement.new(LABEL_ARCH, OP_IN, arch)


def _without_accelerators() -> List[Requirement]:
    return [
        Requirement.new(LABEL_INSTANCE_GPU_COUNT, OP_DOES_NOT_EXIST),
        Requirement.new(LABEL_INSTANCE_ACCELERATOR_COUNT, OP_DOES_NOT_EXIST),
    ]


class AL2:
    """Amazon Linux 2 EKS optimized images."""

    name = "AL2"

    def default_images(self, kubernetes_version: str) -> List[DefaultImage]:
        base = f"/aws/service/eks/optimized-ami/{kubernetes_version}"
        return [
            DefaultImage(
                query=f"{base}/amazon-linux-2/recommended/image_id",
                requirements=Requirements([_arch(ARCH_AMD64), *_without_accelerators()]),
            ),
            DefaultImage(
                query=f"{base}/amazon-linux-2-gpu/recommended/image_id",
                requirements=Requirements(
                    [_arch(ARCH_AMD64), Requirement.new(LABEL_INSTANCE_GPU_COUNT, OP_EXISTS)]
                ),
            ),
            DefaultImage(
                query=f"{base}/amazon-linux-2-gpu/recommended/image_id",
                requirements=Requirements(
                    [_arch(ARCH_AMD64), Requirement.new(LABEL_INSTANCE_ACCELERATOR_COUNT, OP_EXISTS)]
                ),
            ),
            DefaultImage(
                query=f"{base}/amazon-linux-2-arm64/recommended/image_id",
                requirements=Requirements([_arch(ARCH_ARM64), *_without_accelerators()]),
            ),
        ]


class Bottlerocket:
    """Bottlerocket images, with NVIDIA variants for GPU instance types."""

    name = "Bottlerocket"

    def default_images(self, kubernetes_version: str) -> List[DefaultImage]:
        base = "/aws/service/bottlerocket"
        return [
            DefaultImage(
                query=f"{base}/aws-k8s-{kubernetes_version}/x86_64/latest/image_id",
                requirements=Requirements([_arch(ARCH_AMD64), *_without_accelerators()]),
            ),
            DefaultImage(
                query=f"{base}/aws-k8s-{kubernetes_version}/arm64/latest/image_id",
                requirements=Requirements([_arch(ARCH_ARM64), *_without_accelerators()]),
            ),
            DefaultImage(
                query=f"{base}/aws-k8s-{kubernetes_version}-nvidia/x86_64/latest/image_id",
                requirements=Requirements(
                    [_arch(ARCH_AMD64), Requirement.new(LABEL_INSTANCE_GPU_COUNT, OP_EXISTS)]
                ),
            ),
            DefaultImage(
                query=f"{base}/aws-k8s-{kubernetes_version}-nvidia/arm64/latest/image_id",
                requirements=Requirements(
                    [_arch(ARCH_ARM64), Requirement.new(LABEL_INSTANCE_GPU_COUNT, OP_EXISTS)]
                ),
            ),
        ]


class Ubuntu:
    """Canonical Ubuntu 20.04 EKS images."""

    name = "Ubuntu"

    def default_images(self, kubernetes_version: str) -> List[DefaultImage]:
        base = f"/aws/service/canonical/ubuntu/eks/20.04/{kubernetes_version}/stable/current"
        return [
            DefaultImage(
                query=f"{base}/amd64/hvm/ebs-gp2/ami-id",
                requirements=Requirements([_arch(ARCH_AMD64)]),
            ),
            DefaultImage(
                query=f"{base}/arm64/hvm/ebs-gp2/ami-id",
                requirements=Requirements([_arch(ARCH_ARM64)]),
            ),
        ]


class _Windows:
    name = ""
    release = ""
    build = ""

    def default_images(self, kubernetes_version: str) -> List[DefaultImage]:
        return [
            DefaultImage(
                query=(
                    "/aws/service/ami-windows-latest/"
                    f"Windows_Server-{self.release}-English-Core-EKS_Optimized-{kubernetes_version}/image_id"
                ),
                requirements=Requirements(
                    [
                        _arch(ARCH_AMD64),
                        Requirement.new(LABEL_OS, OP_IN, "windows"),
                        Requirement.new(LABEL_WINDOWS_BUILD, OP_IN, self.build),
                    ]
                ),
            )
        ]


class Windows2019(_Windows):
    name = "Windows2019"
    release = "2019"
    build = "10.0.17763"


class Windows2022(_Windows):
    name = "Windows2022"
    release = "2022"
    build = "10.0.20348"


class Custom:
    """Images are always chosen by selector terms; there are no defaults."""

    name = "Custom"

    def default_images(self, kubernetes_version: str) -> List[DefaultImage]:
        return []


IMAGE_FAMILIES: Dict[str, ImageFamily] = {
    family.name: family
    for family in (AL2(), Bottlerocket(), Ubuntu(), Windows2019(), Windows2022(), Custom())
}


def get_image_family(name: Optional[str]) -> ImageFamily:
    """Look up a family by name; None or "" selects the configured default.

    Raises:
        UnknownImageFamilyError: no family is registered under name
    """
    if not name:
        name = ap_config.default_image_family()
    try:
        return IMAGE_FAMILIES[name]
    except KeyError:
        raise UnknownImageFamilyError(f"unknown image family {name!r}") from None
