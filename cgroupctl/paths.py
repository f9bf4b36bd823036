"""Functions that map a subsystem name to a cgroup path."""

from __future__ import annotations

import os
from typing import Callable

Path = Callable[[str], str]

DEFAULT_SLICE = "system.slice"


def _subsystem_name(subsystem: object) -> str:
    """Return the plain string name of a subsystem, rejecting other types."""
    value = getattr(subsystem, "value", subsystem)
    if not isinstance(value, str):
        raise TypeError(
            f"subsystem name must be a string, not {type(value).__name__}"
        )
    return value


def root_path(subsystem: str) -> str:
    """Path for the root cgroup of any subsystem."""
    _subsystem_name(subsystem)
    return "/"


def static_path(path: str) -> Path:
    """Return a path function giving *path* for every subsystem."""

    def resolve(subsystem: str) -> str:
        _subsystem_name(subsystem)
        return path

    return resolve


def sub_path(path: Path, sub_name: str) -> Path:
    """Return a path function nesting *sub_name* under *path*."""

    def resolve(subsystem: str) -> str:
        return os.path.join(path(subsystem), sub_name)

    return resolve


def error_path(err: BaseException) -> Path:
    """Return a path function that always raises *err*."""

    def resolve(subsystem: str) -> str:
        _subsystem_name(subsystem)
        raise err

    return resolve


def slice_path(slice: str, name: str) -> Path:
    """Return a path function for unit *name* in a systemd *slice*."""
    slice = slice or DEFAULT_SLICE
    joined = os.path.join(slice, name)

    def resolve(subsystem: str) -> str:
        _subsystem_name(subsystem)
        return joined

    return resolve


def split_name(path: str) -> tuple[str, str]:
    """Split a path into its slice and unit name."""
    head, _, unit = path.rpartition("/")
    return head, unit