"""Setup orchestrator.

Runs the fixed install pipeline one stage at a time:

1. compatibility runtime
2. graphics-translation layer
3. fonts
4. dependency packages
5. application payload
6. launch and supervise the application

Every stage performs its side effect first and only then flips its flag in
the state record, so a crash mid-stage leaves the flag false and the stage is
simply run again. Nothing is rolled back: earlier stages stay recorded as done
when a later one fails.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from pathlib import Path

from .components import ApplicationComponent
from .components import ComponentKind
from .components import GraphicsLayerComponent
from .components import RuntimeComponent
from .downloader import HttpDownloader
from .exceptions import CompatRuntimeError
from .exceptions import SetupError
from .exceptions import StageError
from .progress import resolve_progress
from .protocols import CompatRuntime
from .protocols import DownloaderProtocol
from .protocols import ProgressSink
from .protocols import UpdateCheckerProtocol
from .runtime import WineRuntime
from .settings import SetupSettings
from .stage import InstallStage
from .stage import derive_stage
from .state import InstallState
from .state import StateStore
from .supervisor import supervise
from .updates import ManifestUpdateChecker

logger = logging.getLogger(__name__)

RuntimeFactory = Callable[[Path, Path], CompatRuntime]


class SetupManager:
    """
    Orchestrates the install pipeline against one state store.

    Apps inject policy: where state lives (``store``), what to download
    (``settings``), and optionally the transport, runtime and update check.

    Args:
        store: Install state record
        settings: Download sources and install lists
        downloader: Transport shared by all components (defaults to HttpDownloader)
        runtime_factory: Builds a runtime from ``(runtime_path, prefix_path)``
            (defaults to WineRuntime)
        update_checker: Remote version check (defaults to the settings' manifest)

    Example:
        >>> manager = SetupManager(StateStore(default_state_path()))
        >>> runtime = await manager.install_runtime(progress=LoggingProgress())
        >>> await manager.install_graphics_layer(runtime)
    """

    def __init__(
        self,
        store: StateStore,
        settings: SetupSettings | None = None,
        downloader: DownloaderProtocol | None = None,
        runtime_factory: RuntimeFactory | None = None,
        update_checker: UpdateCheckerProtocol | None = None,
    ):
        self.store = store
        self.settings = settings if settings is not None else SetupSettings()
        self.downloader = downloader if downloader is not None else HttpDownloader()
        self.runtime_factory: RuntimeFactory = runtime_factory if runtime_factory is not None else WineRuntime
        self.update_checker = (
            update_checker if update_checker is not None else ManifestUpdateChecker(self.settings.manifest_url)
        )

    @staticmethod
    def prefix_path(state: InstallState) -> Path:
        return state.config_dir / "prefix"

    @staticmethod
    def _staging_dir(state: InstallState, kind: ComponentKind) -> Path:
        return state.config_dir / "staging" / kind.value

    @asynccontextmanager
    async def _stage(self, name: str):
        """Log stage boundaries and tag failures with the stage name."""
        logger.info(f"Stage {name}: starting")
        try:
            yield
        except SetupError as e:
            e.context.setdefault("stage", name)
            logger.error(f"Stage {name} failed: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Stage {name} failed: {e}")
            raise StageError(f"Stage {name} failed: {e}", context={"stage": name}) from e
        logger.info(f"Stage {name}: done")

    async def install_runtime(self, progress: ProgressSink | None = None) -> CompatRuntime:
        """Install the compatibility runtime at ``config_dir/runtime``.

        Returns:
            Runtime bound to the managed prefix
        """
        async with self._stage("compat_layer"):
            state = await self.store.load()
            runtime_path = state.config_dir / "runtime"
            component = RuntimeComponent(
                runtime_path,
                self.settings.runtime_url,
                downloader=self.downloader,
                staging_dir=self._staging_dir(state, ComponentKind.RUNTIME),
            )
            await component.install(progress)

            await self.store.update(compat_layer_installed=True, runtime_path=runtime_path)
            return self.runtime_factory(runtime_path, self.prefix_path(state))

    async def install_graphics_layer(self, runtime: CompatRuntime, progress: ProgressSink | None = None) -> None:
        """Install the graphics-translation layer into ``runtime``'s prefix."""
        async with self._stage("graphics_layer"):
            state = await self.store.load()
            component = GraphicsLayerComponent(
                runtime,
                state.config_dir / "dxvk",
                self.settings.graphics_url,
                downloader=self.downloader,
                staging_dir=self._staging_dir(state, ComponentKind.GRAPHICS_LAYER),
            )
            await component.install(progress)

            await self.store.update(graphics_layer_installed=True)

    async def install_fonts(self, runtime: CompatRuntime, progress: ProgressSink | None = None) -> None:
        """Install the configured fonts one by one, reporting one step per font."""
        async with self._stage("fonts"):
            sink = resolve_progress(progress)
            fonts = self.settings.fonts
            sink.setup(len(fonts), "Installing fonts")
            sink.progress(0)

            for done, font in enumerate(fonts, start=1):
                logger.debug(f"Installing font {font}")
                await asyncio.to_thread(runtime.install_font, font)
                sink.progress(done)

            await self.store.update(fonts_installed=True)

    async def install_dependencies(self, runtime: CompatRuntime) -> None:
        """Install the configured dependency packages through the runtime."""
        async with self._stage("dependencies"):
            for package in self.settings.packages:
                logger.debug(f"Installing package {package}")
                await asyncio.to_thread(runtime.install_package, package)

            await self.store.update(dependencies_installed=True)

    async def install_application(
        self,
        application_dir: Path,
        progress: ProgressSink | None = None,
        version: str | None = None,
    ) -> None:
        """Install the application payload into ``application_dir``.

        Args:
            application_dir: Target directory (created if needed)
            progress: Optional sink for the download
            version: Version being installed, recorded for update checks
        """
        async with self._stage("application"):
            if not self.settings.application_url:
                raise StageError("No application source configured")

            await asyncio.to_thread(application_dir.mkdir, parents=True, exist_ok=True)
            state = await self.store.load()
            component = ApplicationComponent(
                application_dir,
                self.settings.application_url,
                downloader=self.downloader,
                staging_dir=self._staging_dir(state, ComponentKind.APPLICATION),
            )
            await component.install(progress)

            changes: dict = {"application_installed": True, "application_dir": application_dir}
            if version is not None:
                changes["application_version"] = version
            await self.store.update(**changes)

    async def start_application(self, runtime: CompatRuntime, application_dir: Path) -> int:
        """Launch the application under ``runtime`` and log its output until it exits.

        Runs until the child's output stream closes. Cancel the awaiting task
        to stop supervising; the child keeps running and its remaining output
        is discarded.

        Returns:
            The application's exit code
        """
        async with self._stage("launch"):
            version = await asyncio.to_thread(runtime.version)
            logger.debug(f"Runtime version: {version}")

            process = await asyncio.to_thread(runtime.run, application_dir / self.settings.executable)
            return await supervise(process)

    async def get_runtime(self) -> CompatRuntime:
        """Runtime recorded by a completed ``install_runtime``.

        Raises:
            CompatRuntimeError: If the runtime was never installed
        """
        state = await self.store.load()
        if not state.compat_layer_installed or state.runtime_path is None:
            raise CompatRuntimeError(
                "Compatibility runtime is not installed", context={"config_dir": str(state.config_dir)}
            )
        return self.runtime_factory(state.runtime_path, self.prefix_path(state))

    async def set_application_dir(self, application_dir: Path | None) -> None:
        await self.store.update(application_dir=application_dir)

    async def get_application_dir(self) -> Path | None:
        return (await self.store.load()).application_dir

    async def mark_patched(self) -> None:
        """Record that the installed application has been patched."""
        await self.store.update(application_patched=True)

    async def current_stage(self) -> InstallStage:
        """Stage that should run next."""
        return await derive_stage(await self.store.load(), self.update_checker)
