"""Wine/Proton runtime control surface.

Thin wrapper over the runtime's ``wine`` binary and ``winetricks``. All calls
block; callers on the event loop run them in a worker thread.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

from .exceptions import CompatRuntimeError

logger = logging.getLogger(__name__)

DLL_OVERRIDES_KEY = r"HKEY_CURRENT_USER\Software\Wine\DllOverrides"

# DXVK release directory -> prefix directory
_GRAPHICS_LAYER_DIRS = {
    "x64": "system32",
    "x32": "syswow64",
}


class WineRuntime:
    """
    Installed Wine or Proton build bound to one prefix.

    Supports both layouts: Proton releases keep the binaries under
    ``files/bin``, plain Wine builds under ``bin``.

    Args:
        runtime_path: Root of the extracted runtime
        prefix_path: WINEPREFIX used for every call
        winetricks: winetricks executable name or path
    """

    def __init__(self, runtime_path: Path, prefix_path: Path, winetricks: str = "winetricks"):
        self.runtime_path = runtime_path
        self.prefix_path = prefix_path
        self.winetricks = winetricks

    @property
    def wine_binary(self) -> Path:
        for candidate in (self.runtime_path / "files" / "bin" / "wine", self.runtime_path / "bin" / "wine"):
            if candidate.exists():
                return candidate
        raise CompatRuntimeError(
            f"No wine binary found in {self.runtime_path}",
            context={"runtime_path": str(self.runtime_path)},
        )

    def environment(self) -> dict[str, str]:
        """Process environment pointing wine and winetricks at this runtime and prefix."""
        wine = self.wine_binary
        env = os.environ.copy()
        env["WINEPREFIX"] = str(self.prefix_path)
        env["WINE"] = str(wine)
        env["WINESERVER"] = str(wine.with_name("wineserver"))
        env["PATH"] = os.pathsep.join([str(wine.parent), env.get("PATH", "")])
        return env

    def _run(self, args: list[str], action: str) -> subprocess.CompletedProcess:
        logger.debug(f"{action}: {' '.join(args)}")
        try:
            result = subprocess.run(
                args,
                env=self.environment(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise CompatRuntimeError(f"{action} failed: {e}", context={"command": args}) from e

        if result.returncode != 0:
            raise CompatRuntimeError(
                f"{action} failed with exit code {result.returncode}",
                context={"command": args, "stderr": result.stderr[-2000:]},
            )
        return result

    def version(self) -> str:
        return self._run([str(self.wine_binary), "--version"], "Query wine version").stdout.strip()

    def install_font(self, font: str) -> None:
        self._run([self.winetricks, "--unattended", font], f"Install font {font}")

    def install_package(self, package: str) -> None:
        self._run([self.winetricks, "--unattended", package], f"Install package {package}")

    def install_graphics_layer(self, layer_dir: Path) -> None:
        """Copy the layer's DLLs into the prefix and mark them as native overrides."""
        windows_dir = self.prefix_path / "drive_c" / "windows"
        if not (windows_dir / "system32").exists():
            self._run([str(self.wine_binary), "wineboot", "--init"], "Initialize prefix")

        overrides: set[str] = set()
        for source_name, target_name in _GRAPHICS_LAYER_DIRS.items():
            source_dir = layer_dir / source_name
            if not source_dir.is_dir():
                continue
            target_dir = windows_dir / target_name
            target_dir.mkdir(parents=True, exist_ok=True)
            for dll in sorted(source_dir.glob("*.dll")):
                shutil.copy2(dll, target_dir / dll.name)
                overrides.add(dll.stem)

        if not overrides:
            raise CompatRuntimeError(
                f"No DLLs found in graphics layer {layer_dir}", context={"layer_dir": str(layer_dir)}
            )

        for name in sorted(overrides):
            self._run(
                [str(self.wine_binary), "reg", "add", DLL_OVERRIDES_KEY, "/v", name, "/d", "native", "/f"],
                f"Register DLL override {name}",
            )
        logger.info(f"Registered {len(overrides)} graphics layer DLLs in {self.prefix_path}")

    def run(self, executable: Path) -> subprocess.Popen:
        logger.info(f"Launching {executable}")
        try:
            return subprocess.Popen(
                [str(self.wine_binary), str(executable)],
                cwd=executable.parent,
                env=self.environment(),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise CompatRuntimeError(f"Failed to launch {executable}: {e}", context={"executable": str(executable)}) from e
