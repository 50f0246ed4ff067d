"""Label requirements and compatibility matching."""

from .requirements import (
    ARCH_AMD64,
    ARCH_ARM64,
    AWS_TO_KUBE_ARCHITECTURES,
    LABEL_ARCH,
    LABEL_INSTANCE_ACCELERATOR_COUNT,
    LABEL_INSTANCE_GPU_COUNT,
    LABEL_OS,
    LABEL_WINDOWS_BUILD,
    OP_DOES_NOT_EXIST,
    OP_EXISTS,
    OP_IN,
    OP_NOT_IN,
    WELL_KNOWN_ARCHITECTURES,
    WELL_KNOWN_LABELS,
    Requirement,
    Requirements,
)

__all__ = [
    "ARCH_AMD64",
    "ARCH_ARM64",
    "AWS_TO_KUBE_ARCHITECTURES",
    "LABEL_ARCH",
    "LABEL_INSTANCE_ACCELERATOR_COUNT",
    "LABEL_INSTANCE_GPU_COUNT",
    "LABEL_OS",
    "LABEL_WINDOWS_BUILD",
    "OP_DOES_NOT_EXIST",
    "OP_EXISTS",
    "OP_IN",
    "OP_NOT_IN",
    "Requirement",
    "Requirements",
    "WELL_KNOWN_ARCHITECTURES",
    "WELL_KNOWN_LABELS",
]
