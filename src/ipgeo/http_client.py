"""Shared HTTP client utilities for ipgeo."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from . import __version__
from .config import AppSettings

POOL_LIMITS = httpx.Limits(max_keepalive_connections=10, max_connections=20)


def download_timeout(settings: AppSettings | None = None) -> httpx.Timeout:
    """Per-attempt timeout for database downloads."""
    settings = settings or AppSettings()
    return httpx.Timeout(settings.DOWNLOAD_TIMEOUT, connect=10.0)


@asynccontextmanager
async def get_client(settings: AppSettings | None = None) -> AsyncIterator[httpx.AsyncClient]:
    """Client for database downloads.

    Release assets are served through redirects, so they are followed.
    """
    async with httpx.AsyncClient(
        timeout=download_timeout(settings),
        limits=POOL_LIMITS,
        headers={
            "accept": "application/octet-stream, */*",
            "user-agent": f"ipgeo/{__version__}",
        },
        follow_redirects=True,
    ) as client:
        yield client
