"""Protocols for the collaborators the setup pipeline consumes.

The library only knows these interfaces. Apps (or tests) provide the
implementations: an HTTP downloader, a wine runtime, a manifest-backed update
checker, a UI progress bar.
"""

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Protocol
from typing import runtime_checkable

if TYPE_CHECKING:
    from .state import InstallState


@runtime_checkable
class ProgressSink(Protocol):
    """Receiver for progress notifications during long-running work.

    ``setup`` is called once per bounded unit of work, before any ``progress``
    call for that unit. ``progress`` receives a non-decreasing count that never
    exceeds the declared total. One instance may be reused sequentially by
    nested operations, but is never called from two stages at once.
    """

    def setup(self, total: int | None, label: str) -> None:
        """Start a unit of work.

        Args:
            total: Expected final count, or None if unknown
            label: Short description of the work (file name, step name)
        """
        ...

    def progress(self, current: int) -> None:
        """Report the count reached so far for the current unit."""
        ...


class DownloaderProtocol(Protocol):
    """Fetches a remote archive into a local directory."""

    async def download(self, url: str, output_dir: Path, progress: ProgressSink) -> Path:
        """Download ``url`` into ``output_dir``.

        Args:
            url: Source URL
            output_dir: Existing directory to write into
            progress: Sink receiving byte counts

        Returns:
            Path to the downloaded file

        Raises:
            TransportError: If the source is unreachable or the file unwritable
        """
        ...


@runtime_checkable
class CompatRuntime(Protocol):
    """Control surface of an installed compatibility runtime.

    Calls are blocking; the orchestrator moves them off the event loop.
    """

    def version(self) -> str:
        """Return the runtime's version string."""
        ...

    def install_font(self, font: str) -> None:
        """Install a named font into the runtime prefix."""
        ...

    def install_package(self, package: str) -> None:
        """Install a named dependency package (winetricks verb) into the prefix."""
        ...

    def install_graphics_layer(self, layer_dir: Path) -> None:
        """Register an extracted graphics-translation layer with the prefix."""
        ...

    def run(self, executable: Path) -> subprocess.Popen:
        """Launch ``executable`` under the runtime with stdout piped."""
        ...


class UpdateCheckerProtocol(Protocol):
    """Answers whether a newer application version is published."""

    async def needs_update(self, state: "InstallState") -> bool:
        """Return True if the remote version exceeds the locally recorded one."""
        ...
