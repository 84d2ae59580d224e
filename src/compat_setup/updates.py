"""Remote application version check."""

import asyncio
import logging

import aiohttp
from packaging.version import InvalidVersion
from packaging.version import Version

from .exceptions import TransportError
from .state import InstallState

logger = logging.getLogger(__name__)


class ManifestUpdateChecker:
    """
    Compares the locally recorded application version with a remote manifest.

    Manifest format (JSON):
    {
      "version": "2.1.0"
    }

    An installed application without a recorded version is treated as
    outdated.
    """

    def __init__(self, manifest_url: str, timeout: float = 30):
        self.manifest_url = manifest_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def remote_version(self) -> str:
        """Fetch the published version string.

        Raises:
            TransportError: If the manifest can't be fetched or has no version
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(self.manifest_url) as response:
                    response.raise_for_status()
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransportError(
                f"Failed to fetch version manifest: {e}", context={"url": self.manifest_url}
            ) from e

        version = data.get("version") if isinstance(data, dict) else None
        if not isinstance(version, str):
            raise TransportError("Version manifest has no version field", context={"url": self.manifest_url})
        return version

    async def needs_update(self, state: InstallState) -> bool:
        remote = await self.remote_version()
        local = state.application_version
        if local is None:
            logger.info(f"No local application version recorded, remote is {remote}")
            return True

        try:
            newer = Version(remote) > Version(local)
        except InvalidVersion:
            newer = remote != local
        logger.debug(f"Application version local={local} remote={remote} newer={newer}")
        return newer
