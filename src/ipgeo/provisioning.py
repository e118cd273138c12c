"""Geo database provisioning.

Makes sure every database file the sources need exists locally, downloading
the missing ones in parallel before the resolver is created.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

import httpx
from rich.progress import Progress, TaskID

from . import constants
from .config import AppSettings
from .exceptions import ProvisioningError
from .http_client import get_client

logger = logging.getLogger(__name__)


class DownloadError(Exception):
    """Raised when a download attempt gets an unusable response"""


class DatabaseProvisioner:
    """Download and verify the geo databases"""

    DATABASE_URLS = {
        "asn": constants.ASN_DB_URL,
        "city": constants.CITY_DB_URL,
        "geocn": constants.GEOCN_DB_URL,
    }

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        progress: Optional[Progress] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or AppSettings()
        self.progress = progress
        self._sleep = sleep

    @property
    def files(self) -> Dict[Path, str]:
        """Local path of every database and the URL it is fetched from."""
        return {
            Path(path): self.DATABASE_URLS[name]
            for name, path in self.settings.database_paths.items()
        }

    def missing(self) -> List[Path]:
        return [path for path in self.files if not _file_exists(path)]

    async def ensure(
        self, force: bool = False, client: httpx.AsyncClient | None = None
    ) -> List[Path]:
        """
        Download every missing database (every database when ``force``).

        Returns:
            The paths that were downloaded.

        Raises:
            ProvisioningError: a file could not be downloaded after all retries.
        """
        targets = list(self.files) if force else self.missing()
        for path in self.files:
            if path not in targets:
                logger.debug(f"Database already present: {path}")
        if not targets:
            return []

        for path in targets:
            path.parent.mkdir(parents=True, exist_ok=True)

        if client is None:
            async with get_client(self.settings) as owned_client:
                results = await self._download_all(owned_client, targets)
        else:
            results = await self._download_all(client, targets)

        failures = [result for result in results if isinstance(result, BaseException)]
        for failure in failures:
            logger.error(str(failure))
        if failures:
            first = failures[0]
            if isinstance(first, ProvisioningError):
                raise first
            raise ProvisioningError("databases", str(first)) from first
        return targets

    async def _download_all(self, client: httpx.AsyncClient, targets: List[Path]) -> list:
        files = self.files
        return await asyncio.gather(
            *(self.download_with_retry(client, files[path], path) for path in targets),
            return_exceptions=True,
        )

    async def download_with_retry(self, client: httpx.AsyncClient, url: str, path: Path) -> None:
        """Download with a fixed number of attempts and a linearly growing delay."""
        max_retries = max(1, self.settings.DOWNLOAD_MAX_RETRIES)
        last_error: str | None = None

        for attempt in range(max_retries):
            if attempt > 0:
                delay = self.settings.DOWNLOAD_RETRY_DELAY * (attempt + 1)
                logger.info(f"Retrying download of {path} (attempt {attempt + 1}/{max_retries})")
                await self._sleep(delay)
            try:
                logger.info(f"Downloading database: {path}")
                await self._download(client, url, path)
                logger.info(f"Database downloaded: {path}")
                return
            except (httpx.HTTPError, DownloadError, OSError) as e:
                last_error = str(e) or type(e).__name__
                logger.warning(f"Download of {path} failed: {last_error}")

        raise ProvisioningError(str(path), f"gave up after {max_retries} attempts: {last_error}")

    async def _download(self, client: httpx.AsyncClient, url: str, path: Path) -> None:
        """Stream ``url`` into a temporary file, then move it into place."""
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise DownloadError(f"HTTP {response.status_code}")

                total = int(response.headers.get("content-length") or 0)
                task = self._start_task(path, total)
                current = 0
                last_update = time.monotonic()

                with open(tmp_path, "wb") as out:
                    async for chunk in response.aiter_bytes(constants.DOWNLOAD_CHUNK_SIZE):
                        out.write(chunk)
                        current += len(chunk)
                        if task is not None:
                            self.progress.update(task, completed=current)
                        if time.monotonic() - last_update > 1.0:
                            _log_progress(path, current, total)
                            last_update = time.monotonic()

            tmp_path.replace(path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def _start_task(self, path: Path, total: int) -> Optional[TaskID]:
        if self.progress is None:
            return None
        return self.progress.add_task(f"Downloading {path.name}", total=total or None)

    def verify_databases(self) -> bool:
        """Verify databases exist and are not empty"""
        all_exist = True
        for path in self.files:
            if _file_exists(path) and path.stat().st_size > 0:
                logger.info(f"{path.name} present ({path.stat().st_size} bytes)")
            else:
                logger.error(f"{path.name} missing or empty")
                all_exist = False
        return all_exist


def _file_exists(path: Path) -> bool:
    return path.exists() and not path.is_dir()


def _log_progress(path: Path, current: int, total: int) -> None:
    if total > 0:
        logger.info(
            f"Download progress {path}: {current / total * 100:.2f}% ({current}/{total} bytes)"
        )
    else:
        logger.info(f"Download progress {path}: {current} bytes")


async def ensure_databases(
    settings: AppSettings | None = None,
    *,
    force: bool = False,
    progress: Optional[Progress] = None,
) -> List[Path]:
    """Main entry point: block until every database is present or fail."""
    provisioner = DatabaseProvisioner(settings, progress=progress)
    return await provisioner.ensure(force=force)
