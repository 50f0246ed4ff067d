"""Label requirements used to match images against instance types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

# Operators accepted on a node selector requirement
OP_IN = "In"
OP_NOT_IN = "NotIn"
OP_EXISTS = "Exists"
OP_DOES_NOT_EXIST = "DoesNotExist"

LABEL_ARCH = "kubernetes.io/arch"
LABEL_OS = "kubernetes.io/os"
LABEL_INSTANCE_TYPE = "node.kubernetes.io/instance-type"
LABEL_WINDOWS_BUILD = "node.kubernetes.io/windows-build"
LABEL_ZONE = "topology.kubernetes.io/zone"
LABEL_CAPACITY_TYPE = "karpenter.sh/capacity-type"

LABEL_GROUP = "karpenter.k8s.aws"
LABEL_INSTANCE_HYPERVISOR = f"{LABEL_GROUP}/instance-hypervisor"
LABEL_INSTANCE_ENCRYPTION_IN_TRANSIT = f"{LABEL_GROUP}/instance-encryption-in-transit-supported"
LABEL_INSTANCE_CATEGORY = f"{LABEL_GROUP}/instance-category"
LABEL_INSTANCE_FAMILY = f"{LABEL_GROUP}/instance-family"
LABEL_INSTANCE_GENERATION = f"{LABEL_GROUP}/instance-generation"
LABEL_INSTANCE_LOCAL_NVME = f"{LABEL_GROUP}/instance-local-nvme"
LABEL_INSTANCE_SIZE = f"{LABEL_GROUP}/instance-size"
LABEL_INSTANCE_CPU = f"{LABEL_GROUP}/instance-cpu"
LABEL_INSTANCE_MEMORY = f"{LABEL_GROUP}/instance-memory"
LABEL_INSTANCE_NETWORK_BANDWIDTH = f"{LABEL_GROUP}/instance-network-bandwidth"
LABEL_INSTANCE_PODS = f"{LABEL_GROUP}/instance-pods"
LABEL_INSTANCE_GPU_NAME = f"{LABEL_GROUP}/instance-gpu-name"
LABEL_INSTANCE_GPU_MANUFACTURER = f"{LABEL_GROUP}/instance-gpu-manufacturer"
LABEL_INSTANCE_GPU_COUNT = f"{LABEL_GROUP}/instance-gpu-count"
LABEL_INSTANCE_GPU_MEMORY = f"{LABEL_GROUP}/instance-gpu-memory"
LABEL_INSTANCE_ACCELERATOR_NAME = f"{LABEL_GROUP}/instance-accelerator-name"
LABEL_INSTANCE_ACCELERATOR_MANUFACTURER = f"{LABEL_GROUP}/instance-accelerator-manufacturer"
LABEL_INSTANCE_ACCELERATOR_COUNT = f"{LABEL_GROUP}/instance-accelerator-count"

WELL_KNOWN_LABELS: FrozenSet[str] = frozenset(
    {
        LABEL_ARCH,
        LABEL_OS,
        LABEL_INSTANCE_TYPE,
        LABEL_WINDOWS_BUILD,
        LABEL_ZONE,
        LABEL_CAPACITY_TYPE,
        LABEL_INSTANCE_HYPERVISOR,
        LABEL_INSTANCE_ENCRYPTION_IN_TRANSIT,
        LABEL_INSTANCE_CATEGORY,
        LABEL_INSTANCE_FAMILY,
        LABEL_INSTANCE_GENERATION,
        LABEL_INSTANCE_LOCAL_NVME,
        LABEL_INSTANCE_SIZE,
        LABEL_INSTANCE_CPU,
        LABEL_INSTANCE_MEMORY,
        LABEL_INSTANCE_NETWORK_BANDWIDTH,
        LABEL_INSTANCE_PODS,
        LABEL_INSTANCE_GPU_NAME,
        LABEL_INSTANCE_GPU_MANUFACTURER,
        LABEL_INSTANCE_GPU_COUNT,
        LABEL_INSTANCE_GPU_MEMORY,
        LABEL_INSTANCE_ACCELERATOR_NAME,
        LABEL_INSTANCE_ACCELERATOR_MANUFACTURER,
        LABEL_INSTANCE_ACCELERATOR_COUNT,
    }
)

ARCH_AMD64 = "amd64"
ARCH_ARM64 = "arm64"
WELL_KNOWN_ARCHITECTURES: FrozenSet[str] = frozenset({ARCH_AMD64, ARCH_ARM64})

# EC2 architecture names -> kubernetes architecture names
AWS_TO_KUBE_ARCHITECTURES: Dict[str, str] = {
    "x86_64": ARCH_AMD64,
    ARCH_ARM64: ARCH_ARM64,
}

_NEGATIVE_OPERATORS = frozenset({OP_NOT_IN, OP_DOES_NOT_EXIST})


@dataclass(frozen=True)
class Requirement:
    """A single label constraint.

    Stored as a (possibly complemented) value set:

    - In(values):      complement=False, values
    - NotIn(values):   complement=True,  values
    - Exists:          complement=True,  empty
    - DoesNotExist:    complement=False, empty
    """

    key: str
    complement: bool
    values: FrozenSet[str]

    @classmethod
    def new(cls, key: str, operator: str, *values: str) -> "Requirement":
        if operator == OP_IN:
            return cls(key, False, frozenset(values))
        if operator == OP_NOT_IN:
            return cls(key, True, frozenset(values))
        if operator == OP_EXISTS:
            return cls(key, True, frozenset())
        if operator == OP_DOES_NOT_EXIST:
            return cls(key, False, frozenset())
        raise ValueError(f"unsupported operator {operator!r}")

    @property
    def operator(self) -> str:
        if self.complement:
            return OP_NOT_IN if self.values else OP_EXISTS
        return OP_IN if self.values else OP_DOES_NOT_EXIST

    def has_values(self) -> bool:
        """True when at least one value satisfies this requirement."""
        return self.complement or bool(self.values)

    def any(self) -> str:
        """An arbitrary allowed value, or "" when none is enumerable."""
        if self.complement or not self.values:
            return ""
        return sorted(self.values)[0]

    def intersection(self, other: "Requirement") -> "Requirement":
        if self.complement and other.complement:
            return Requirement(self.key, True, self.values | other.values)
        if self.complement:
            return Requirement(self.key, False, other.values - self.values)
        if other.complement:
            return Requirement(self.key, False, self.values - other.values)
        return Requirement(self.key, False, self.values & other.values)

    def to_node_selector(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "operator": self.operator,
            "values": sorted(self.values),
        }


class Requirements:
    """Mapping of label key to Requirement.

    Adding a requirement for a key that is already present replaces it.
    """

    def __init__(self, requirements: Optional[Iterable[Requirement]] = None) -> None:
        self._requirements: Dict[str, Requirement] = {}
        for requirement in requirements or ():
            self.add(requirement)

    @classmethod
    def from_labels(cls, labels: Dict[str, str]) -> "Requirements":
        return cls(Requirement.new(key, OP_IN, value) for key, value in labels.items())

    def add(self, *requirements: Requirement) -> None:
        for requirement in requirements:
            self._requirements[requirement.key] = requirement

    def get(self, key: str) -> Requirement:
        """Requirement for key; keys that are not constrained behave as Exists."""
        return self._requirements.get(key) or Requirement.new(key, OP_EXISTS)

    def has(self, key: str) -> bool:
        return key in self._requirements

    def keys(self) -> List[str]:
        return list(self._requirements)

    def node_selector_requirements(self) -> List[Dict[str, object]]:
        return [req.to_node_selector() for req in self._requirements.values()]

    def compatible(self, other: "Requirements") -> bool:
        """Whether `other`'s constraints can coexist with ours.

        Keys of `other` that we do not constrain are accepted for well-known
        labels; custom labels are only accepted when `other` excludes values.
        Keys both sides constrain must share at least one value, unless both
        sides only exclude values.
        """
        for key, incoming in other._requirements.items():
            if not self.has(key):
                if key in WELL_KNOWN_LABELS or incoming.operator in _NEGATIVE_OPERATORS:
                    continue
                return False
            existing = self._requirements[key]
            if existing.intersection(incoming).has_values():
                continue
            if incoming.operator in _NEGATIVE_OPERATORS and existing.operator in _NEGATIVE_OPERATORS:
                continue
            return False
        return True

    def __iter__(self) -> Iterator[Requirement]:
        return iter(self._requirements.values())

    def __len__(self) -> int:
        return len(self._requirements)

    def __contains__(self, key: object) -> bool:
        return key in self._requirements

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Requirements):
            return NotImplemented
        return self._requirements == other._requirements

    def __hash__(self) -> int:
        return hash(frozenset(self._requirements.values()))

    def __repr__(self) -> str:
        inner = ", ".join(
            f"{req.key} {req.operator} {sorted(req.values)}" for req in self._requirements.values()
        )
        return f"Requirements({inner})"
