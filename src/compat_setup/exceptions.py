"""Setup-specific exceptions.

Errors are grouped by origin: transport, archive decoding, the compatibility
runtime, and state persistence. Every error carries an optional context dict
so callers can tell which stage and which file were involved.
"""


class SetupError(Exception):
    """Base exception for setup operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (stage, paths, urls)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    @property
    def stage(self) -> str | None:
        """Name of the pipeline stage that failed, if known."""
        return self.context.get("stage")


class TransportError(SetupError):
    """Download source unreachable or destination unwritable."""


class DecodeError(SetupError):
    """Archive corrupt or in an unsupported format."""


class CompatRuntimeError(SetupError):
    """Compatibility runtime failed to install, answer a query, or launch."""


class PersistenceError(SetupError):
    """Install state record could not be written."""


class StageError(SetupError):
    """Unexpected failure inside a pipeline stage."""
