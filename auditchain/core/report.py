import csv
import io
import logging
from typing import Dict, List

from auditchain.core.model import CanonicalRow, UpgradeGroup

HEADERS = ["Vulnerable Package", "Version", "Parent Chain", "Severity", "Advisory URL"]
LATEST_HEADER = "Latest Version"


def to_csv(rows: List[CanonicalRow], include_latest: bool = False) -> str:
    """Every cell quoted, embedded quotes doubled."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    headers = HEADERS + [LATEST_HEADER] if include_latest else HEADERS
    buffer.write(",".join(headers) + "\n")

    for row in rows:
        values = [row.package, row.version, row.chain_label, row.severity, row.advisory_url]
        if include_latest:
            values.append(row.latest_version)
        writer.writerow(values)

    return buffer.getvalue()


def write_csv(rows: List[CanonicalRow], path: str, include_latest: bool = False) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(rows, include_latest))
    logging.info(f"Saved CSV to {path}")


def minimal_upgrade_summary(groups: List[UpgradeGroup]) -> str:
    if not groups:
        return "No actionable parent upgrades detected."

    lines = ["Upgrade the following parent libraries to fix vulnerabilities:"]
    for group in groups:
        lines.append(f"- {group.parent} (affects: {', '.join(group.packages)})")
    return "\n".join(lines)


def analyze_vulnerabilities(rows: List[CanonicalRow]) -> str:
    if not rows:
        return "No vulnerabilities detected."

    by_package: Dict[str, List[CanonicalRow]] = {}
    for row in rows:
        by_package.setdefault(row.package, []).append(row)

    sections = []
    for pkg, entries in by_package.items():
        parents = list(dict.fromkeys(e.top_level_parent for e in entries if e.top_level_parent))
        # Lexical on the raw version strings
        oldest = min(entries, key=lambda e: e.version)

        lines = [f"Vulnerable package: {pkg}"]
        if len(parents) > 1:
            lines.append(f"- Found in multiple parents: {', '.join(parents)}")
        else:
            lines.append(f"- Parent: {parents[0] if parents else '(direct)'}")
        lines.append(f"- Oldest version among parents: {oldest.top_level_parent or '(direct)'} ({oldest.version})")
        lines.append(
            f"- Upgrade recommendation: Check npmjs.com for the latest safe version of {pkg} "
            f"and upgrade the parent(s) if possible."
        )
        sections.append("\n".join(lines))

    return "\n\n".join(sections)
