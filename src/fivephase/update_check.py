"""
5-Phase Workflow - Feature development workflow for Claude Code
Copyright (c) 2025 5-Phase Workflow contributors
Licensed under MIT License

Latest published version lookup. Any failure means "no information".
"""

import asyncio
import logging
import os
from typing import Optional

import httpx

from . import PACKAGE_NAME

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0


def update_url() -> str:
    return os.environ.get('FIVE_PHASE_UPDATE_URL') or f"https://pypi.org/pypi/{PACKAGE_NAME}/json"


def _extract_version(payload) -> Optional[str]:
    # PyPI JSON API nests it under "info"; a bare {"version": ...} is accepted too
    if not isinstance(payload, dict):
        return None
    info = payload.get('info')
    version = info.get('version') if isinstance(info, dict) else payload.get('version')
    return version if isinstance(version, str) and version else None


async def fetch_latest_version(url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT,
                               client: Optional[httpx.AsyncClient] = None) -> Optional[str]:
    """Return the latest published version string, or None on any failure."""
    url = url or update_url()
    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                resp = await own_client.get(url, timeout=timeout, follow_redirects=True)
        else:
            resp = await client.get(url, timeout=timeout, follow_redirects=True)
        if resp.status_code != 200:
            logger.debug("Update check %s returned HTTP %d", url, resp.status_code)
            return None
        return _extract_version(resp.json())
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        logger.debug("Update check %s failed: %s", url, e)
        return None


def latest_version(url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT) -> Optional[str]:
    """Blocking wrapper around fetch_latest_version."""
    return asyncio.run(fetch_latest_version(url=url, timeout=timeout))
