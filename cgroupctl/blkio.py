"""The blkio subsystem controller."""

from __future__ import annotations

import os
import re
from typing import IO, Dict, Iterable, Iterator, List, Tuple, Union

from .errors import InvalidFormatError
from .fsutil import parse_uint
from .names import Name
from .resources import LinuxBlockIO, LinuxResources
from .stats import BlkIOEntry, BlkIOStat, Metrics

DEFAULT_DIR_PERM = 0o755

DeviceKey = Tuple[int, int]

_STAT_SPLIT = re.compile(r"[ :]+")

_CFQ_STATS = (
    ("sectors_recursive", "sectors_recursive"),
    ("io_service_bytes_recursive", "io_service_bytes_recursive"),
    ("io_serviced_recursive", "io_serviced_recursive"),
    ("io_queued_recursive", "io_queued_recursive"),
    ("io_service_time_recursive", "io_service_time_recursive"),
    ("io_wait_time_recursive", "io_wait_time_recursive"),
    ("io_merged_recursive", "io_merged_recursive"),
    ("time_recursive", "io_time_recursive"),
)

_THROTTLE_STATS = (
    ("throttle.io_serviced", "io_serviced_recursive"),
    ("throttle.io_service_bytes", "io_service_bytes_recursive"),
)


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _write(path: str, data: str) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(data)


def _settings(blkio: LinuxBlockIO) -> Iterator[Tuple[str, str]]:
    """Yield (file suffix, content) pairs for every configured setting."""
    if blkio.weight is not None:
        yield "weight", str(blkio.weight)
    if blkio.leaf_weight is not None:
        yield "leaf_weight", str(blkio.leaf_weight)
    for wd in blkio.weight_device:
        if wd.weight is not None:
            yield "weight_device", f"{wd.major}:{wd.minor} {wd.weight}"
        if wd.leaf_weight is not None:
            yield "leaf_weight_device", f"{wd.major}:{wd.minor} {wd.leaf_weight}"
    for name, devices in (
        ("throttle.read_bps_device", blkio.throttle_read_bps_device),
        ("throttle.read_iops_device", blkio.throttle_read_iops_device),
        ("throttle.write_bps_device", blkio.throttle_write_bps_device),
        ("throttle.write_iops_device", blkio.throttle_write_iops_device),
    ):
        for td in devices:
            yield name, f"{td.major}:{td.minor} {td.rate}"


def get_devices(stream: Union[IO[str], Iterable[str]]) -> Dict[DeviceKey, str]:
    """Map (major, minor) to a device path from a /proc/partitions listing.

    The first two lines are a header; when a device number appears more than
    once, the first occurrence wins.
    """
    devices: Dict[DeviceKey, str] = {}
    for index, line in enumerate(stream):
        if index < 2:
            continue
        fields = line.split()
        if len(fields) < 4:
            raise InvalidFormatError(f"invalid partitions line: {line.rstrip()!r}")
        key = (int(fields[0]), int(fields[1]))
        devices.setdefault(key, os.path.join("/dev", fields[3]))
    return devices


class BlkioController:
    """Controller for the blkio subsystem."""

    def __init__(self, root: str, proc_root: str = "/proc") -> None:
        self.root = _join(root, Name.BLKIO.value)
        self.proc_root = proc_root

    def name(self) -> Name:
        return Name.BLKIO

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        if resources.block_io is None:
            return
        for name, content in _settings(resources.block_io):
            _write(os.path.join(directory, "blkio." + name), content)

    def update(self, path: str, resources: LinuxResources) -> None:
        self.create(path, resources)

    def stat(self, path: str, stats: Metrics) -> None:
        stats.blkio = BlkIOStat()
        blkio = stats.blkio

        settings: Tuple[Tuple[str, str], ...] = ()
        if os.path.lexists(os.path.join(self.path(path), "blkio.io_serviced_recursive")):
            settings = _CFQ_STATS

        with open(os.path.join(self.proc_root, "partitions"), encoding="utf-8") as fh:
            devices = get_devices(fh)

        size = 0
        for name, attr in settings:
            entries = getattr(blkio, attr)
            entries.extend(self._read_entry(devices, path, name))
            size += len(entries)
        if size > 0:
            return

        # The cgroup may not use CFQ-scheduled devices; fall back to throttle stats.
        for name, attr in _THROTTLE_STATS:
            getattr(blkio, attr).extend(self._read_entry(devices, path, name))

    def _read_entry(
        self, devices: Dict[DeviceKey, str], path: str, name: str
    ) -> List[BlkIOEntry]:
        with open(os.path.join(self.path(path), "blkio." + name), encoding="utf-8") as fh:
            lines = fh.read().splitlines()
        entries: List[BlkIOEntry] = []
        for line in lines:
            fields = [f for f in _STAT_SPLIT.split(line) if f]
            if len(fields) < 3:
                if len(fields) == 2 and fields[0] == "Total":
                    continue
                raise InvalidFormatError(
                    f"invalid line found while parsing {path}: {line}"
                )
            major = parse_uint(fields[0])
            minor = parse_uint(fields[1])
            op = ""
            value_field = 2
            if len(fields) == 4:
                op = fields[2]
                value_field = 3
            entries.append(
                BlkIOEntry(
                    op=op,
                    device=devices.get((major, minor), ""),
                    major=major,
                    minor=minor,
                    value=parse_uint(fields[value_field]),
                )
            )
        return entries