"""Installation stage derivation.

The current stage is never stored. It is recomputed from the state record on
every call, checking prerequisites in pipeline order; the remote update check
is only reached once every local install flag is set.
"""

from enum import IntEnum

from .protocols import UpdateCheckerProtocol
from .state import InstallState
from .state import StateStore


class InstallStage(IntEnum):
    """Pipeline stages, ordered by priority."""

    COMPAT_LAYER_MISSING = 1
    GRAPHICS_LAYER_MISSING = 2
    FONTS_MISSING = 3
    DEPENDENCIES_MISSING = 4
    APPLICATION_MISSING = 5
    APPLICATION_NEEDS_UPDATE = 6
    APPLICATION_NOT_PATCHED = 7
    INSTALLED = 8


_LOCAL_CHECKS = (
    ("compat_layer_installed", InstallStage.COMPAT_LAYER_MISSING),
    ("graphics_layer_installed", InstallStage.GRAPHICS_LAYER_MISSING),
    ("fonts_installed", InstallStage.FONTS_MISSING),
    ("dependencies_installed", InstallStage.DEPENDENCIES_MISSING),
    ("application_installed", InstallStage.APPLICATION_MISSING),
)


async def derive_stage(state: InstallState, update_checker: UpdateCheckerProtocol) -> InstallStage:
    """
    Map a state record to the stage that should run next.

    Args:
        state: Install state record
        update_checker: Remote version check, consulted only when every
            install flag is set

    Returns:
        The first unmet stage, or INSTALLED
    """
    for field, stage in _LOCAL_CHECKS:
        if not getattr(state, field):
            return stage

    if await update_checker.needs_update(state):
        return InstallStage.APPLICATION_NEEDS_UPDATE

    if not state.application_patched:
        return InstallStage.APPLICATION_NOT_PATCHED

    return InstallStage.INSTALLED


async def current_stage(store: StateStore, update_checker: UpdateCheckerProtocol) -> InstallStage:
    """Load the record from ``store`` and derive its stage."""
    return await derive_stage(await store.load(), update_checker)
