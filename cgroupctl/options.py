"""Configuration for creating or loading a cgroup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Callable, Optional

from .errors import DevicesRequiredError, IgnoreSubsystem
from .names import Hierarchy, Name, Subsystem
from .paths import Path

InitCheck = Callable[[Subsystem, Path, BaseException], None]


def _skip_unless_required(subsystem: Subsystem, required: AbstractSet[Name]) -> None:
    """Raise DevicesRequiredError for a required subsystem, else skip it."""
    if subsystem.name() in required:
        raise DevicesRequiredError()
    raise IgnoreSubsystem()


def allow_any(subsystem: Subsystem, path: Path, err: BaseException) -> None:
    """Skip any subsystem that fails to initialise."""
    _skip_unless_required(subsystem, frozenset())


def require_devices(subsystem: Subsystem, path: Path, err: BaseException) -> None:
    """Require the devices subsystem; skip any other that fails."""
    _skip_unless_required(subsystem, frozenset({Name.DEVICES}))


@dataclass
class InitConfig:
    """Options used when a cgroup is created or loaded.

    ``init_check`` is called for a subsystem whose controller is not active.
    Returning normally or raising :class:`IgnoreSubsystem` skips it; any other
    exception aborts the operation. ``hierarchy`` lists the subsystems to use.
    """

    init_check: Optional[InitCheck] = require_devices
    hierarchy: Optional[Hierarchy] = None