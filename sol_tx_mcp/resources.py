"""Documentation resources mirrored from the Solana docs repository."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from sol_tx_mcp.config import SolTxConfig, default_config

logger = logging.getLogger(__name__)

DOC_RESOURCES: Dict[str, Dict[str, str]] = {
    "solana://docs/intro/installation": {
        "name": "solanaDocsInstallation",
        "path": "intro/installation.mdx",
        "description": "Solana CLI and toolchain installation guide.",
    },
    "solana://docs/references/clusters": {
        "name": "solanaDocsClusters",
        "path": "references/clusters.mdx",
        "description": "Solana cluster reference (mainnet-beta, testnet, devnet).",
    },
}


def list_resources() -> List[Dict[str, Any]]:
    return [
        {"uri": uri, "name": entry["name"], "description": entry["description"], "mimeType": "text/markdown"}
        for uri, entry in DOC_RESOURCES.items()
    ]


async def read_resource(
    uri: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    config: SolTxConfig = default_config,
) -> Dict[str, Any]:
    """
    Fetch a documentation page. Fetch failures are reported as the page text
    so the agent sees why the content is missing.
    """
    entry = DOC_RESOURCES.get(uri)
    if entry is None:
        return {"error": f"Unknown resource: {uri}"}

    url = f"{config.docs_base_url.rstrip('/')}/{entry['path']}"
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=config.timeout)
    try:
        response = await client.get(url)
        if response.status_code >= 400:
            text = f"Error: documentation fetch returned HTTP {response.status_code}"
        else:
            text = response.text
    except httpx.RequestError as exc:
        logger.warning("Documentation fetch failed for %s", uri)
        text = f"Error: {exc.__class__.__name__} while fetching documentation"
    finally:
        if owns_client:
            await client.aclose()
    return {"contents": [{"uri": uri, "mimeType": "text/markdown", "text": text}]}
