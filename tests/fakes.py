"""Test doubles for the setup pipeline collaborators."""

import io
import subprocess
import sys
import tarfile
from pathlib import Path

from compat_setup import CompatRuntimeError


def make_tarball(path: Path, files: dict[str, bytes], mode: str = "w:gz") -> Path:
    """Write a tar archive containing ``files`` (member name -> content)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, mode) as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


class RecordingProgress:
    """Progress sink that records every call."""

    def __init__(self):
        self.events: list[tuple] = []

    def setup(self, total: int | None, label: str) -> None:
        self.events.append(("setup", total, label))

    def progress(self, current: int) -> None:
        self.events.append(("progress", current))

    @property
    def setups(self) -> list[tuple]:
        return [event for event in self.events if event[0] == "setup"]

    def assert_well_formed(self) -> None:
        """setup precedes progress; progress is non-decreasing and bounded by total."""
        total = None
        last = None
        started = False
        for event in self.events:
            if event[0] == "setup":
                started = True
                total = event[1]
                last = None
                continue

            assert started, "progress reported before setup"
            current = event[1]
            if last is not None:
                assert current >= last, f"progress went backwards: {last} -> {current}"
            if total is not None:
                assert current <= total, f"progress {current} exceeds total {total}"
            last = current


class FakeDownloader:
    """Serves local archives by URL, copying them into the output directory."""

    def __init__(self, archives: dict[str, Path]):
        self.archives = archives
        self.calls: list[tuple[str, Path]] = []

    async def download(self, url: str, output_dir: Path, progress) -> Path:
        self.calls.append((url, output_dir))
        source = self.archives[url]
        data = source.read_bytes()

        progress.setup(len(data), source.name)
        progress.progress(0)
        progress.progress(len(data) // 2)
        progress.progress(len(data))

        target = output_dir / source.name
        target.write_bytes(data)
        return target


class FakeRuntime:
    """Compatibility runtime recording calls instead of running wine."""

    def __init__(self, runtime_path: Path | None = None, prefix_path: Path | None = None):
        self.runtime_path = runtime_path
        self.prefix_path = prefix_path
        self.fonts: list[str] = []
        self.packages: list[str] = []
        self.layers: list[Path] = []
        self.launched: list[Path] = []
        self.fail_on: str | None = None
        self.output = "print('ready'); print('running')"

    def version(self) -> str:
        return "wine-9.0 (Fake)"

    def install_font(self, font: str) -> None:
        if font == self.fail_on:
            raise CompatRuntimeError(f"font {font} failed")
        self.fonts.append(font)

    def install_package(self, package: str) -> None:
        if package == self.fail_on:
            raise CompatRuntimeError(f"package {package} failed")
        self.packages.append(package)

    def install_graphics_layer(self, layer_dir: Path) -> None:
        self.layers.append(layer_dir)

    def run(self, executable: Path) -> subprocess.Popen:
        self.launched.append(executable)
        return subprocess.Popen([sys.executable, "-c", self.output], stdout=subprocess.PIPE)


class FakeUpdateChecker:
    """Update checker with a fixed answer."""

    def __init__(self, newer: bool = False):
        self.newer = newer
        self.calls = 0

    async def needs_update(self, state) -> bool:
        self.calls += 1
        return self.newer
