import logging
from typing import Any, Dict, Set, Tuple

from auditchain.core.model import VulnerabilityRecord


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def normalize_report(report: Any) -> Tuple[Set[str], Dict[str, VulnerabilityRecord]]:
    """
    Collapses an npm audit document into (vulnerable names, details by name).

    Every known section is read, in order: v6 `advisories`, v7+ `vulnerabilities`,
    then a bare list. The first record seen for a package is kept.
    """
    details: Dict[str, VulnerabilityRecord] = {}

    def record(name, severity, url):
        if not name or name in details:
            return
        details[name] = VulnerabilityRecord(name, _text(severity), _text(url))

    if isinstance(report, dict):
        advisories = report.get("advisories")
        if isinstance(advisories, dict):
            for advisory in advisories.values():
                if not isinstance(advisory, dict):
                    continue
                url = _text(advisory.get("url"))
                cves = advisory.get("cves")
                if not url and isinstance(cves, list) and cves:
                    url = _text(cves[0])
                record(_text(advisory.get("module_name")), advisory.get("severity"), url)

        vulnerabilities = report.get("vulnerabilities")
        if isinstance(vulnerabilities, dict):
            for name, vuln in vulnerabilities.items():
                if not isinstance(vuln, dict):
                    vuln = {}
                record(_text(name), vuln.get("severity"), _first_via_url(vuln.get("via")))

    elif isinstance(report, list):
        for item in report:
            if not isinstance(item, dict):
                continue
            name = _text(item.get("module_name")) or _text(item.get("package")) or _text(item.get("name"))
            record(name, item.get("severity"), item.get("url"))

    logging.debug(f"Normalized report: {len(details)} vulnerable packages.")
    return set(details), details


def _first_via_url(via: Any) -> str:
    # "via" mixes package names (str) with advisory objects
    if not isinstance(via, list):
        return ""
    for entry in via:
        if isinstance(entry, dict) and _text(entry.get("url")):
            return entry["url"]
    return ""
