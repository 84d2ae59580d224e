"""HTTP downloader with streaming writes and progress reporting.

Responses are streamed to disk chunk by chunk (aiohttp + aiofiles) so large
runtime and application archives never sit in memory.
"""

import asyncio
import logging
from pathlib import Path
from urllib.parse import unquote
from urllib.parse import urlparse

import aiofiles
import aiohttp

from .exceptions import TransportError
from .protocols import ProgressSink

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_TIMEOUT = 60 * 60
DEFAULT_CONNECT_TIMEOUT = 30


def filename_from_url(url: str) -> str:
    """Last path segment of ``url``, or ``download`` if the path is empty.

    >>> filename_from_url("https://example.org/releases/dxvk-2.4.tar.gz?raw=1")
    'dxvk-2.4.tar.gz'
    """
    name = unquote(urlparse(url).path.rsplit("/", 1)[-1])
    return name or "download"


class HttpDownloader:
    """
    HTTP/HTTPS downloader.

    Reports ``setup(content_length, filename)`` then the cumulative number of
    bytes written, clamped to the declared length.

    Example:
        >>> downloader = HttpDownloader()
        >>> path = await downloader.download(url, Path("/tmp/staging"), NullProgress())
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ):
        """
        Args:
            chunk_size: Bytes read per chunk
            timeout: Total request timeout in seconds
            connect_timeout: Connection timeout in seconds
            session: Optional shared session (caller closes it)
        """
        self.chunk_size = chunk_size
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=connect_timeout)
        self._session = session

    async def download(self, url: str, output_dir: Path, progress: ProgressSink) -> Path:
        """Download ``url`` into ``output_dir``.

        Raises:
            TransportError: On HTTP errors, timeouts, or an unwritable destination
        """
        output_path = output_dir / filename_from_url(url)
        logger.info(f"Downloading {url}")

        try:
            if self._session is not None:
                written = await self._fetch(self._session, url, output_path, progress)
            else:
                async with aiohttp.ClientSession() as session:
                    written = await self._fetch(session, url, output_path, progress)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"Failed to download {url}: {e}", context={"url": url, "output_path": str(output_path)}
            ) from e
        except OSError as e:
            raise TransportError(
                f"Cannot write {output_path}: {e}", context={"url": url, "output_path": str(output_path)}
            ) from e

        logger.info(f"Downloaded {output_path.name} ({written} bytes)")
        return output_path

    async def _fetch(
        self,
        session: aiohttp.ClientSession,
        url: str,
        output_path: Path,
        progress: ProgressSink,
    ) -> int:
        async with session.get(url, timeout=self.timeout) as response:
            if response.status != 200:
                raise TransportError(
                    f"HTTP {response.status} for {url}", context={"url": url, "status": response.status}
                )

            total = response.content_length
            progress.setup(total, output_path.name)
            progress.progress(0)

            written = 0
            async with aiofiles.open(output_path, "wb") as f:
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    await f.write(chunk)
                    written += len(chunk)
                    progress.progress(min(written, total) if total else written)

            return written
