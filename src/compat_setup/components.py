"""Installable components: compatibility runtime, graphics layer, application.

Every component follows the same contract: ``download`` an archive into a
staging directory, ``uncompress`` it, then ``place`` the result at the final
install path. ``install`` composes the three and is safe to rerun after a
failure: staging and managed install paths are cleared before extraction.
"""

import asyncio
import logging
import shutil
from abc import ABC
from abc import abstractmethod
from enum import Enum
from pathlib import Path
from typing import ClassVar

from .archive import extract_archive
from .archive import single_root
from .downloader import HttpDownloader
from .progress import resolve_progress
from .protocols import CompatRuntime
from .protocols import DownloaderProtocol
from .protocols import ProgressSink

logger = logging.getLogger(__name__)


class ComponentKind(str, Enum):
    """Closed set of installable component kinds."""

    RUNTIME = "runtime"
    GRAPHICS_LAYER = "graphics_layer"
    APPLICATION = "application"


def _remove_tree(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


class Component(ABC):
    """
    Base class for installable components.

    Subclasses choose where the archive is extracted and how the extracted
    tree is placed.

    Args:
        install_path: Final location of the component
        source: Archive URL handed to the downloader
        downloader: Transport (defaults to HttpDownloader)
        staging_dir: Scratch directory for the archive and extraction
            (defaults to a hidden sibling of ``install_path``)
    """

    kind: ClassVar[ComponentKind]

    def __init__(
        self,
        install_path: Path,
        source: str,
        downloader: DownloaderProtocol | None = None,
        staging_dir: Path | None = None,
    ):
        self.install_path = install_path
        self.source = source
        self.downloader = downloader if downloader is not None else HttpDownloader()
        self.staging_dir = (
            staging_dir if staging_dir is not None else install_path.with_name(f".{install_path.name}.staging")
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(install_path={self.install_path!r}, source={self.source!r})"

    async def download(self, output_dir: Path, progress: ProgressSink | None = None) -> Path:
        """Fetch the component archive into ``output_dir`` (created if absent).

        Returns:
            Path to the downloaded archive

        Raises:
            TransportError: If the source is unreachable or ``output_dir`` unwritable
        """
        await asyncio.to_thread(output_dir.mkdir, parents=True, exist_ok=True)
        return await self.downloader.download(self.source, output_dir, resolve_progress(progress))

    async def uncompress(self, archive_path: Path, destination: Path) -> None:
        """Extract ``archive_path`` into ``destination`` and delete the archive.

        Raises:
            DecodeError: If the archive is corrupt or unsupported
        """
        await asyncio.to_thread(extract_archive, archive_path, destination)

    async def install(self, progress: ProgressSink | None = None) -> Path:
        """
        Download, extract and place the component.

        Args:
            progress: Optional sink, shared with the download

        Returns:
            The install path
        """
        logger.info(f"Installing {self.kind.value} to {self.install_path}")

        await asyncio.to_thread(self._reset)
        archive = await self.download(self.staging_dir, progress)
        await self.uncompress(archive, self.extract_dir)
        await self.place()
        await asyncio.to_thread(_remove_tree, self.staging_dir)

        logger.info(f"Installed {self.kind.value} at {self.install_path}")
        return self.install_path

    @property
    def extract_dir(self) -> Path:
        """Where the archive is unpacked."""
        return self.staging_dir / "extracted"

    def _reset(self) -> None:
        """Remove artifacts left by an earlier, possibly partial, install."""
        _remove_tree(self.staging_dir)
        _remove_tree(self.install_path)
        self.install_path.parent.mkdir(parents=True, exist_ok=True)

    @abstractmethod
    async def place(self) -> None:
        """Move the extracted tree to its final location."""


class RuntimeComponent(Component):
    """Compatibility runtime release (Wine/Proton build).

    The release's versioned root directory is renamed to ``install_path``.
    """

    kind = ComponentKind.RUNTIME

    async def place(self) -> None:
        root = single_root(self.extract_dir)
        await asyncio.to_thread(shutil.move, root, self.install_path)


class GraphicsLayerComponent(Component):
    """Graphics-translation layer (DXVK release) bound to an installed runtime."""

    kind = ComponentKind.GRAPHICS_LAYER

    def __init__(
        self,
        runtime: CompatRuntime,
        install_path: Path,
        source: str,
        downloader: DownloaderProtocol | None = None,
        staging_dir: Path | None = None,
    ):
        super().__init__(install_path, source, downloader=downloader, staging_dir=staging_dir)
        self.runtime = runtime

    async def place(self) -> None:
        root = single_root(self.extract_dir)
        await asyncio.to_thread(shutil.move, root, self.install_path)
        await asyncio.to_thread(self.runtime.install_graphics_layer, self.install_path)


class ApplicationComponent(Component):
    """Application payload, extracted straight into the application directory.

    The directory may be user-chosen, so a rerun overwrites files in place
    instead of removing the directory.
    """

    kind = ComponentKind.APPLICATION

    @property
    def extract_dir(self) -> Path:
        return self.install_path

    def _reset(self) -> None:
        _remove_tree(self.staging_dir)

    async def place(self) -> None:
        pass
