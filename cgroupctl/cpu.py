"""The cpu and cpuacct subsystem controllers."""

from __future__ import annotations

import os
from typing import Dict, List, Tuple

from .errors import CgroupError
from .fsutil import clock_ticks, parse_kv, parse_uint, read_uint
from .names import Name
from .resources import LinuxResources
from .stats import Metrics

DEFAULT_DIR_PERM = 0o755
NANOSECONDS_IN_SECOND = 1_000_000_000


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _read_kv(path: str) -> Dict[str, int]:
    with open(path, encoding="utf-8") as fh:
        return dict(parse_kv(line) for line in fh.read().splitlines())


class CpuController:
    """Controller for the cpu subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.CPU.value)

    def name(self) -> Name:
        return Name.CPU

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        cpu = resources.cpu
        if cpu is None:
            return
        for name, value in (
            ("rt_period_us", cpu.realtime_period),
            ("rt_runtime_us", cpu.realtime_runtime),
            ("shares", cpu.shares),
            ("cfs_period_us", cpu.period),
            ("cfs_quota_us", cpu.quota),
        ):
            if value is not None:
                with open(os.path.join(directory, "cpu." + name), "w", encoding="utf-8") as fh:
                    fh.write(str(value))

    def update(self, path: str, resources: LinuxResources) -> None:
        self.create(path, resources)

    def stat(self, path: str, stats: Metrics) -> None:
        throttling = stats.cpu.throttling
        with open(os.path.join(self.path(path), "cpu.stat"), encoding="utf-8") as fh:
            lines = fh.read().splitlines()
        for line in lines:
            key, value = parse_kv(line)
            if key == "nr_periods":
                throttling.periods = value
            elif key == "nr_throttled":
                throttling.throttled_periods = value
            elif key == "throttled_time":
                throttling.throttled_time = value


class CpuacctController:
    """Controller for the cpuacct subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.CPUACCT.value)

    def name(self) -> Name:
        return Name.CPUACCT

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def stat(self, path: str, stats: Metrics) -> None:
        user, kernel = self.get_usage(path)
        total = read_uint(os.path.join(self.path(path), "cpuacct.usage"))
        per_cpu = self.percpu_usage(path)
        usage = stats.cpu.usage
        usage.total = total
        usage.user = user
        usage.kernel = kernel
        usage.per_cpu = per_cpu

    def percpu_usage(self, path: str) -> List[int]:
        """Return the usage of each CPU in nanoseconds."""
        with open(os.path.join(self.path(path), "cpuacct.usage_percpu"), encoding="utf-8") as fh:
            return [parse_uint(value) for value in fh.read().split()]

    def get_usage(self, path: str) -> Tuple[int, int]:
        """Return (user, kernel) CPU time in nanoseconds."""
        stat_path = os.path.join(self.path(path), "cpuacct.stat")
        raw = _read_kv(stat_path)
        values = []
        for field in ("user", "system"):
            if field not in raw:
                raise CgroupError(
                    f'expected field "{field}" but not found in "{stat_path}"'
                )
            values.append(raw[field])
        ticks = clock_ticks()
        user, kernel = values
        return (user * NANOSECONDS_IN_SECOND) // ticks, (kernel * NANOSECONDS_IN_SECOND) // ticks