"""The rdma subsystem controller."""

from __future__ import annotations

import os
from typing import Iterable, List

from .fsutil import parse_uint
from .names import Name
from .resources import LinuxRdma, LinuxResources
from .stats import Metrics, RdmaEntry, RdmaStat

DEFAULT_DIR_PERM = 0o755
_MAX_UINT32 = (1 << 32) - 1


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def create_cmd_string(device: str, limits: LinuxRdma) -> str:
    """Format the rdma.max line that sets *limits* for *device*."""
    parts = [device]
    if limits.hca_handles is not None:
        parts.append(f"hca_handle={limits.hca_handles}")
    if limits.hca_objects is not None:
        parts.append(f"hca_object={limits.hca_objects}")
    return " ".join(parts)


def _parse_rdma_kv(raw: str, entry: RdmaEntry) -> None:
    parts = raw.split("=")
    if len(parts) != 2:
        return
    key, text = parts
    if text == "max":
        value = _MAX_UINT32
    else:
        try:
            value = parse_uint(text, 10, 32)
        except ValueError:
            return
    if key == "hca_handle":
        entry.hca_handles = value
    elif key == "hca_object":
        entry.hca_objects = value


def to_rdma_entries(lines: Iterable[str]) -> List[RdmaEntry]:
    """Parse rdma.current or rdma.max lines; malformed lines are skipped."""
    entries: List[RdmaEntry] = []
    for line in lines:
        parts = line.split()
        if len(parts) != 3:
            continue
        entry = RdmaEntry(device=parts[0])
        _parse_rdma_kv(parts[1], entry)
        _parse_rdma_kv(parts[2], entry)
        entries.append(entry)
    return entries


class RdmaController:
    """Controller for the rdma subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.RDMA.value)

    def name(self) -> Name:
        return Name.RDMA

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        """Create the cgroup and write the first usable device limit."""
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        for device, limit in resources.rdma.items():
            if device and (limit.hca_handles is not None or limit.hca_objects is not None):
                with open(os.path.join(directory, "rdma.max"), "w", encoding="utf-8") as fh:
                    fh.write(create_cmd_string(device, limit))
                return

    def update(self, path: str, resources: LinuxResources) -> None:
        self.create(path, resources)

    def stat(self, path: str, stats: Metrics) -> None:
        directory = self.path(path)
        with open(os.path.join(directory, "rdma.current"), encoding="utf-8") as fh:
            current = fh.read().split("\n")
        with open(os.path.join(directory, "rdma.max"), encoding="utf-8") as fh:
            limits = fh.read().split("\n")
        # A device removed between the two reads makes the data inconsistent.
        if len(current) != len(limits):
            return
        stats.rdma = RdmaStat(
            current=to_rdma_entries(current),
            limit=to_rdma_entries(limits),
        )