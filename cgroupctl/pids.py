"""The pids subsystem controller."""

from __future__ import annotations

import os

from .fsutil import parse_uint, read_uint
from .names import Name
from .resources import LinuxResources
from .stats import Metrics, PidsStat

DEFAULT_DIR_PERM = 0o755


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


class PidsController:
    """Controller for the pids subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.PIDS.value)

    def name(self) -> Name:
        return Name.PIDS

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        if resources.pids is not None and resources.pids.limit > 0:
            with open(os.path.join(directory, "pids.max"), "w", encoding="utf-8") as fh:
                fh.write(str(resources.pids.limit))

    def update(self, path: str, resources: LinuxResources) -> None:
        self.create(path, resources)

    def stat(self, path: str, stats: Metrics) -> None:
        """Read the current pid count and the limit; ``max`` reads as 0."""
        directory = self.path(path)
        current = read_uint(os.path.join(directory, "pids.current"))
        with open(os.path.join(directory, "pids.max"), "rb") as fh:
            text = fh.read().decode("utf-8", "replace").strip()
        limit = 0 if text == "max" else parse_uint(text, 10, 64)
        stats.pids = PidsStat(current=current, limit=limit)