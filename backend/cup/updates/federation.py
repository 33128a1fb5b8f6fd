"""
Federation: merge results computed by peer Cup servers.

Each configured server exposes its own report at /api/v3/json. Peers are
fetched concurrently; a peer that fails contributes nothing.
"""

import asyncio
import logging
from typing import Dict, List

from cup.updates.errors import RegistryError
from cup.updates.types import CheckResult
from cup.utils.http_client import HttpClient

logger = logging.getLogger(__name__)

REPORT_PATH = "/api/v3/json"


async def fetch_server(http: HttpClient, name: str, url: str) -> List[CheckResult]:
    """
    Fetch one peer's report and tag its entries with the peer's name.

    Returns an empty list (after logging a warning) on any failure.
    """
    endpoint = f"{url.rstrip('/')}{REPORT_PATH}"
    try:
        response = await http.get(endpoint, headers={"Accept": "application/json"})
        if response.status != 200:
            logger.warning(f"Server {name} returned status {response.status}, skipping its images")
            return []
        data = response.json()
        entries = data.get("images") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            logger.warning(f"Server {name} returned a report without images, skipping it")
            return []
    except RegistryError as e:
        logger.warning(f"Failed to fetch results from server {name}: {e.message}")
        return []

    results = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            results.append(CheckResult.from_report_entry(entry, server=name))
        except ValueError as e:
            logger.warning(f"Skipping invalid entry from server {name}: {e}")

    logger.debug(f"Server {name} reported {len(results)} images")
    return results


async def fetch_servers(http: HttpClient, servers: Dict[str, str]) -> List[CheckResult]:
    """Fetch every peer concurrently and merge their results in config order."""
    if not servers:
        return []
    batches = await asyncio.gather(
        *(fetch_server(http, name, url) for name, url in servers.items())
    )
    return [result for batch in batches for result in batch]
