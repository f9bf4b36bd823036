"""The cpuset subsystem controller."""

from __future__ import annotations

import os
from typing import Tuple

from .errors import CgroupError
from .names import Name
from .resources import LinuxResources

DEFAULT_DIR_PERM = 0o755


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _read_optional(path: str) -> bytes:
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except FileNotFoundError:
        return b""


def _write(path: str, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)


def _is_empty(data: bytes) -> bool:
    return not data.strip(b"\n")


class CpusetController:
    """Controller for the cpuset subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.CPUSET.value)

    def name(self) -> Name:
        return Name.CPUSET

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        current = self.path(path)
        self._ensure_parent(current, self.root)
        os.makedirs(current, DEFAULT_DIR_PERM, exist_ok=True)
        self._copy_if_needed(current, os.path.dirname(current))
        if resources.cpu is None:
            return
        for name, value in (("cpus", resources.cpu.cpus), ("mems", resources.cpu.mems)):
            if value:
                _write(os.path.join(current, "cpuset." + name), value.encode())

    def update(self, path: str, resources: LinuxResources) -> None:
        self.create(path, resources)

    @staticmethod
    def _values(path: str) -> Tuple[bytes, bytes]:
        return (
            _read_optional(os.path.join(path, "cpuset.cpus")),
            _read_optional(os.path.join(path, "cpuset.mems")),
        )

    def _ensure_parent(self, current: str, root: str) -> None:
        """Create every directory between *root* and *current*, seeding its values."""
        parent = os.path.dirname(current)
        if os.path.isabs(root) != os.path.isabs(parent):
            return
        if parent == current:
            raise CgroupError("cpuset: cgroup parent path outside cgroup root")
        if os.path.normpath(parent) != root:
            self._ensure_parent(parent, root)
        os.makedirs(current, DEFAULT_DIR_PERM, exist_ok=True)
        self._copy_if_needed(current, parent)

    def _copy_if_needed(self, current: str, parent: str) -> None:
        """Copy cpus and mems from *parent* where *current* has none."""
        current_cpus, current_mems = self._values(current)
        parent_cpus, parent_mems = self._values(parent)
        if _is_empty(current_cpus):
            _write(os.path.join(current, "cpuset.cpus"), parent_cpus)
        if _is_empty(current_mems):
            _write(os.path.join(current, "cpuset.mems"), parent_mems)