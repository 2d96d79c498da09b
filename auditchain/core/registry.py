import asyncio
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx

from auditchain import config
from auditchain.core.model import CanonicalRow


def package_url(name: str) -> str:
    # Scoped names keep the "@" but escape the slash: @scope%2Fpkg
    return f"{config.NPM_REGISTRY}/{quote(name, safe='@')}"


async def fetch_latest_version(client: httpx.AsyncClient, name: str) -> str:
    """Latest published version of `name`, or "" on any failure."""
    try:
        response = await client.get(package_url(name), follow_redirects=True)
        if response.status_code != 200:
            logging.warning(f"Registry returned {response.status_code} for {name}")
            return ""

        latest = response.json().get("dist-tags", {}).get("latest", "")
        return latest if isinstance(latest, str) else ""
    except Exception as e:
        logging.warning(f"Failed to fetch latest version of {name}: {e}")
        return ""


async def fetch_latest_versions(
    names: List[str],
    client: Optional[httpx.AsyncClient] = None,
    on_progress=None,
) -> Dict[str, str]:
    unique = list(dict.fromkeys(names))
    if not unique:
        return {}

    logging.info(f"Looking up latest versions for {len(unique)} packages (Async Mode)...")
    limit = asyncio.Semaphore(config.max_concurrency)
    done = 0

    async def lookup(http, name):
        nonlocal done
        async with limit:
            version = await fetch_latest_version(http, name)
        done += 1
        if on_progress:
            on_progress(done, len(unique))
        return version

    if client is not None:
        versions = await asyncio.gather(*(lookup(client, n) for n in unique))
    else:
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=config.max_concurrency)
        async with httpx.AsyncClient(timeout=config.request_timeout_sec, limits=limits) as http:
            versions = await asyncio.gather(*(lookup(http, n) for n in unique))

    return dict(zip(unique, versions))


async def enrich_latest_versions(
    rows: List[CanonicalRow],
    client: Optional[httpx.AsyncClient] = None,
    on_progress=None,
) -> List[CanonicalRow]:
    """Fills `latest_version` on every row in place. Never raises for lookup failures."""
    latest = await fetch_latest_versions([r.package for r in rows], client, on_progress)
    for row in rows:
        row.latest_version = latest.get(row.package, "")
    return rows
