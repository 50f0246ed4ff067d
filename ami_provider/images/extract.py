"""Derive scheduling requirements from DescribeImages records."""

from __future__ import annotations

from typing import Any, Mapping

from ..scheduling import (
    AWS_TO_KUBE_ARCHITECTURES,
    LABEL_ARCH,
    OP_IN,
    WELL_KNOWN_LABELS,
    Requirement,
    Requirements,
)


def requirements_from_image(image: Mapping[str, Any]) -> Requirements:
    """Build the requirements a node booted from this image would satisfy.

    Tags keyed by a well-known label become In requirements. The image's
    Architecture field is always added last, so it overrides any
    kubernetes.io/arch tag.
    """
    requirements = Requirements()
    for tag in image.get("Tags") or ():
        key = tag.get("Key")
        if key in WELL_KNOWN_LABELS:
            requirements.add(Requirement.new(key, OP_IN, tag.get("Value", "")))

    architecture = image.get("Architecture") or ""
    architecture = AWS_TO_KUBE_ARCHITECTURES.get(architecture, architecture)
    requirements.add(Requirement.new(LABEL_ARCH, OP_IN, architecture))
    return requirements
