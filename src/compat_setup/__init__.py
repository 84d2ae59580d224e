"""compat-setup - Resumable install pipeline for Windows applications on a compatibility runtime.

Public API: the orchestrator, its state record and stage derivation, the
component installers, and the protocols apps implement.

This is library mechanism: apps inject policy (paths, download sources,
progress display).
"""

from .archive import extract_archive
from .components import ApplicationComponent
from .components import Component
from .components import ComponentKind
from .components import GraphicsLayerComponent
from .components import RuntimeComponent
from .downloader import HttpDownloader
from .exceptions import CompatRuntimeError
from .exceptions import DecodeError
from .exceptions import PersistenceError
from .exceptions import SetupError
from .exceptions import StageError
from .exceptions import TransportError
from .manager import SetupManager
from .progress import LoggingProgress
from .progress import NullProgress
from .progress import resolve_progress
from .protocols import CompatRuntime
from .protocols import DownloaderProtocol
from .protocols import ProgressSink
from .protocols import UpdateCheckerProtocol
from .runtime import WineRuntime
from .settings import SetupSettings
from .stage import InstallStage
from .stage import current_stage
from .stage import derive_stage
from .state import InstallState
from .state import StateStore
from .state import default_config_dir
from .state import default_state_path
from .supervisor import OutputDrain
from .supervisor import supervise
from .updates import ManifestUpdateChecker

__all__ = [
    # Orchestration
    "SetupManager",
    "SetupSettings",
    # State
    "InstallState",
    "StateStore",
    "default_config_dir",
    "default_state_path",
    "InstallStage",
    "derive_stage",
    "current_stage",
    # Components
    "Component",
    "ComponentKind",
    "RuntimeComponent",
    "GraphicsLayerComponent",
    "ApplicationComponent",
    "extract_archive",
    "HttpDownloader",
    # Runtime and supervision
    "WineRuntime",
    "OutputDrain",
    "supervise",
    "ManifestUpdateChecker",
    # Progress
    "ProgressSink",
    "NullProgress",
    "LoggingProgress",
    "resolve_progress",
    # Protocols
    "CompatRuntime",
    "DownloaderProtocol",
    "UpdateCheckerProtocol",
    # Exceptions
    "SetupError",
    "TransportError",
    "DecodeError",
    "CompatRuntimeError",
    "PersistenceError",
    "StageError",
]

__version__ = "0.1.0"
