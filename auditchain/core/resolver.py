import logging
from typing import Any, Dict, Iterable, Iterator, List, Set

from auditchain.core.model import (
    CanonicalRow,
    DependencyNode,
    DiscoveryRecord,
    Resolution,
    UpgradeGroup,
    VulnerabilityRecord,
)
from auditchain.core.normalizer import normalize_report
from auditchain.managers.npm import NpmManager


def walk_tree(
    root: DependencyNode,
    vulnerable: Set[str],
    details: Dict[str, VulnerabilityRecord],
) -> Iterator[DiscoveryRecord]:
    """
    Pre-order walk yielding one DiscoveryRecord per occurrence of a vulnerable
    package. Chains start at the root's direct dependency; the root itself is
    never matched.
    """
    # (node, chain of names below root, ids of nodes on that chain)
    stack = [(root, [], frozenset([id(root)]))]

    while stack:
        node, path, on_path = stack.pop()

        # Reversed so the first child is popped first
        for child in reversed(node.children):
            if id(child) in on_path:
                logging.warning(f"Skipping {child.name}: already on path {' -> '.join(path)}")
                continue
            stack.append((child, path + [child.name], on_path | {id(child)}))

        if node is root or node.name not in vulnerable:
            continue

        detail = details.get(node.name) or VulnerabilityRecord(node.name)
        yield DiscoveryRecord(
            package=node.name,
            version=node.version or "",
            parent_chain=path,
            severity=detail.severity,
            advisory_url=detail.advisory_url,
        )


def deduplicate(records: Iterable[DiscoveryRecord]) -> List[CanonicalRow]:
    """Keeps the first record per package@version, in discovery order."""
    retained: Dict[str, CanonicalRow] = {}
    for rec in records:
        if rec.key not in retained:
            retained[rec.key] = rec
    return list(retained.values())


def group_by_parent(rows: Iterable[CanonicalRow]) -> List[UpgradeGroup]:
    groups: Dict[str, UpgradeGroup] = {}
    for row in rows:
        parent = row.top_level_parent
        if not parent:
            continue
        group = groups.setdefault(parent, UpgradeGroup(parent))
        if row.package not in group.packages:
            group.packages.append(row.package)
    return list(groups.values())


def resolve(report: Any, tree: Any) -> Resolution:
    vulnerable, details = normalize_report(report)
    if not vulnerable:
        return Resolution()

    root = tree if isinstance(tree, DependencyNode) else NpmManager.load_tree(tree)
    rows = deduplicate(walk_tree(root, vulnerable, details))
    logging.info(f"{len(rows)} vulnerable installs across {len(vulnerable)} advisories.")

    return Resolution(
        rows=rows,
        groups=group_by_parent(rows),
        vulnerable=[name for name in details if name in vulnerable],
    )
