"""Install state record persistence.

Tracks which pipeline stages completed and where components were placed.

The record is a single JSON file replaced as a whole on every save (temp file
in the same directory, then atomic rename), so a reader sees either the
previous complete record or the new one.

Known risk: a missing *or unreadable* file loads as a fresh default record.
Corruption is therefore indistinguishable from "nothing installed yet" and can
cause already-present components to be installed again.
"""

import asyncio
import logging
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import BaseModel
from pydantic import Field

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

STATE_FILENAME = "compat-setup-config.json"


def default_config_dir() -> Path:
    """Per-user directory holding the state file and managed components."""
    return Path.home() / ".compat-setup"


def default_state_path() -> Path:
    """Location of the state file inside the default config directory."""
    return default_config_dir() / STATE_FILENAME


class InstallState(BaseModel):
    """
    Durable record of setup progress.

    Each flag is set only after its stage fully succeeded.

    Format (JSON):
    {
      "config_dir": "/home/user/.compat-setup",
      "compat_layer_installed": true,
      "graphics_layer_installed": false,
      ...
      "runtime_path": "/home/user/.compat-setup/runtime",
      "application_dir": null,
      "application_version": null
    }
    """

    config_dir: Path = Field(default_factory=default_config_dir)
    compat_layer_installed: bool = False
    graphics_layer_installed: bool = False
    fonts_installed: bool = False
    dependencies_installed: bool = False
    application_installed: bool = False
    application_patched: bool = False

    runtime_path: Path | None = None
    application_dir: Path | None = None
    application_version: str | None = None


class StateStore:
    """
    Install state file manager (with injected state path).

    Example:
        >>> store = StateStore(state_path=default_state_path())
        >>> state = await store.load()
        >>> state.compat_layer_installed
        False
    """

    def __init__(self, state_path: Path, config_dir: Path | None = None):
        """Initialize store with app-provided state path.

        Args:
            state_path: Path to state file (app determines location)
            config_dir: Directory recorded in fresh default records
                (defaults to the state file's directory)
        """
        self.state_path = state_path
        self.config_dir = config_dir if config_dir is not None else state_path.parent
        self._lock = asyncio.Lock()

    def default_state(self) -> InstallState:
        """Fresh record: nothing installed."""
        return InstallState(config_dir=self.config_dir)

    async def load(self) -> InstallState:
        """Load the state record, falling back to defaults if absent or unreadable."""
        if not await aiofiles.os.path.exists(self.state_path):
            return self.default_state()

        try:
            async with aiofiles.open(self.state_path, encoding="utf-8") as f:
                content = await f.read()
            return InstallState.model_validate_json(content)
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable state file {self.state_path}, treating as fresh install: {e}")
            return self.default_state()

    async def save(self, state: InstallState) -> None:
        """Replace the state file with ``state``.

        Raises:
            PersistenceError: If the record cannot be written
        """
        tmp_path = self.state_path.with_name(f".{self.state_path.name}.{uuid.uuid4().hex}.tmp")

        try:
            await aiofiles.os.makedirs(self.state_path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(state.model_dump_json(indent=2) + "\n")
            await aiofiles.os.replace(tmp_path, self.state_path)
        except OSError as e:
            if await aiofiles.os.path.exists(tmp_path):
                await aiofiles.os.remove(tmp_path)
            raise PersistenceError(
                f"Failed to write state file {self.state_path}: {e}",
                context={"state_path": str(self.state_path)},
            ) from e

        logger.debug(f"Saved state file {self.state_path}")

    async def update(self, **changes) -> InstallState:
        """Read-modify-write the record under the store lock.

        Args:
            **changes: Field values to set

        Returns:
            The persisted record

        Raises:
            ValueError: If a change names a field the record does not have
        """
        unknown = sorted(set(changes) - set(InstallState.model_fields))
        if unknown:
            raise ValueError(f"Unknown state fields: {', '.join(unknown)}")

        async with self._lock:
            current = await self.load()
            updated = InstallState.model_validate({**current.model_dump(), **changes})
            await self.save(updated)
            return updated
