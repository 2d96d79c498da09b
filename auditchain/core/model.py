from dataclasses import dataclass, field
from typing import List


@dataclass
class DependencyNode:
    name: str
    version: str
    children: List['DependencyNode'] = field(default_factory=list)


@dataclass
class VulnerabilityRecord:
    package: str
    severity: str = ""
    advisory_url: str = ""


@dataclass
class DiscoveryRecord:
    package: str
    version: str
    parent_chain: List[str] = field(default_factory=list)
    severity: str = ""
    advisory_url: str = ""

    # Registry (filled after dedup)
    latest_version: str = ""

    @property
    def key(self) -> str:
        return f"{self.package}@{self.version}"

    @property
    def top_level_parent(self) -> str:
        return self.parent_chain[0] if self.parent_chain else ""

    @property
    def chain_label(self) -> str:
        return " -> ".join(self.parent_chain)


# A deduplicated discovery, one per installed version
CanonicalRow = DiscoveryRecord


@dataclass
class UpgradeGroup:
    parent: str
    packages: List[str] = field(default_factory=list)


@dataclass
class Resolution:
    rows: List[CanonicalRow] = field(default_factory=list)
    groups: List[UpgradeGroup] = field(default_factory=list)
    vulnerable: List[str] = field(default_factory=list)
