"""Artifact fetcher — downloads a URL to a destination path.

The fetcher does not check whether *destination* already exists; callers
skip the call when they already have the artifact.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import httpx

from openapi_gate.errors import DownloadError

_logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=15.0)


class ArtifactFetcher:
    """Async downloader backed by ``httpx.AsyncClient``.

    Pass *client* to share a connection pool or to inject a mock transport;
    otherwise a short-lived client is created per download.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def download(self, url: str, destination: Path) -> None:
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(destination.name + ".part")

        _logger.info("Downloading %s", url)
        try:
            if self._client is not None:
                await self._stream_to(self._client, url, partial)
            else:
                async with httpx.AsyncClient(
                    follow_redirects=True, timeout=_DEFAULT_TIMEOUT
                ) as client:
                    await self._stream_to(client, url, partial)
        except httpx.HTTPStatusError as exc:
            partial.unlink(missing_ok=True)
            raise DownloadError(
                url,
                f"HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            partial.unlink(missing_ok=True)
            raise DownloadError(url, str(exc) or type(exc).__name__) from exc
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        os.replace(partial, destination)
        _logger.debug("Saved %s to %s", url, destination)

    @staticmethod
    async def _stream_to(client: httpx.AsyncClient, url: str, target: Path) -> None:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            with target.open("wb") as fh:
                async for chunk in response.aiter_bytes():
                    fh.write(chunk)
