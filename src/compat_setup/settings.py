"""Setup settings - download sources and install lists.

Settings are app policy: the library ships defaults, apps override them in
code or from a TOML file.
"""

import tomllib
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

DEFAULT_FONTS = [
    "arial",
    "andale",
    "courier",
    "comicsans",
    "georgia",
    "impact",
    "times",
    "trebuchet",
    "verdana",
    "webdings",
]

DEFAULT_PACKAGES = ["corefonts", "vcrun2022"]


class SetupSettings(BaseModel):
    """
    Sources and install lists for the setup pipeline.

    TOML format:

        [setup]
        runtime_url = "https://example.org/GE-Proton9-1.tar.gz"
        graphics_url = "https://example.org/dxvk-2.3.tar.gz"
        application_url = "https://example.org/app.tar.xz"
        manifest_url = "https://example.org/app/manifest.json"
        executable = "App.exe"
    """

    model_config = ConfigDict(frozen=True)

    runtime_url: str = "https://github.com/GloriousEggroll/proton-ge-custom/releases/download/GE-Proton9-20/GE-Proton9-20.tar.gz"
    graphics_url: str = "https://github.com/doitsujin/dxvk/releases/download/v2.4/dxvk-2.4.tar.gz"
    application_url: str = ""
    manifest_url: str = ""
    executable: str = "App.exe"

    fonts: list[str] = Field(default_factory=lambda: list(DEFAULT_FONTS))
    packages: list[str] = Field(default_factory=lambda: list(DEFAULT_PACKAGES))

    @classmethod
    def from_toml(cls, path: Path) -> "SetupSettings":
        """
        Load settings from the ``[setup]`` table of a TOML file.

        Args:
            path: Path to settings file

        Returns:
            SetupSettings instance, defaults filled in for missing keys

        Raises:
            FileNotFoundError: If the file doesn't exist
            tomllib.TOMLDecodeError: If invalid TOML
        """
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data.get("setup", {}))
