"""The memory subsystem controller and memory event notifications."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import IO, Dict, Iterable, List, Optional, Protocol, Tuple, Union, runtime_checkable

from .errors import CgroupError
from .fsutil import parse_kv, read_uint
from .names import Name
from .resources import LinuxMemory, LinuxResources
from .stats import MemoryEntry, MemoryOomControl, MemoryStat, Metrics

DEFAULT_DIR_PERM = 0o755

_STAT_FIELDS = (
    ("cache", "cache"),
    ("rss", "rss"),
    ("rss_huge", "rss_huge"),
    ("mapped_file", "mapped_file"),
    ("dirty", "dirty"),
    ("writeback", "writeback"),
    ("pgpgin", "pg_pg_in"),
    ("pgpgout", "pg_pg_out"),
    ("pgfault", "pg_fault"),
    ("pgmajfault", "pg_maj_fault"),
    ("inactive_anon", "inactive_anon"),
    ("active_anon", "active_anon"),
    ("inactive_file", "inactive_file"),
    ("active_file", "active_file"),
    ("unevictable", "unevictable"),
    ("hierarchical_memory_limit", "hierarchical_memory_limit"),
    ("hierarchical_memsw_limit", "hierarchical_swap_limit"),
    ("total_cache", "total_cache"),
    ("total_rss", "total_rss"),
    ("total_rss_huge", "total_rss_huge"),
    ("total_mapped_file", "total_mapped_file"),
    ("total_dirty", "total_dirty"),
    ("total_writeback", "total_writeback"),
    ("total_pgpgin", "total_pg_pg_in"),
    ("total_pgpgout", "total_pg_pg_out"),
    ("total_pgfault", "total_pg_fault"),
    ("total_pgmajfault", "total_pg_maj_fault"),
    ("total_inactive_anon", "total_inactive_anon"),
    ("total_active_anon", "total_active_anon"),
    ("total_inactive_file", "total_inactive_file"),
    ("total_active_file", "total_active_file"),
    ("total_unevictable", "total_unevictable"),
)

_OOM_FIELDS = (
    ("oom_kill_disable", "oom_kill_disable"),
    ("under_oom", "under_oom"),
    ("oom_kill", "oom_kill"),
)

_ENTRY_FIELDS = (
    ("usage_in_bytes", "usage"),
    ("max_usage_in_bytes", "max"),
    ("failcnt", "failcnt"),
    ("limit_in_bytes", "limit"),
)

_MODULES = (
    ("", "usage"),
    ("memsw", "swap"),
    ("kmem", "kernel"),
    ("kmem.tcp", "kernel_tcp"),
)


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


class MemoryPressureLevel(str, Enum):
    """Memory pressure levels of the memory cgroup."""

    LOW = "low"
    MEDIUM = "medium"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value


class EventNotificationMode(str, Enum):
    """How pressure notifications propagate through the hierarchy."""

    DEFAULT = "default"
    LOCAL = "local"
    HIERARCHY = "hierarchy"

    def __str__(self) -> str:
        return self.value


@runtime_checkable
class MemoryEvent(Protocol):
    """A memory notification that can be registered with a cgroup."""

    def arg(self) -> str: ...

    def event_file(self) -> str: ...


@dataclass(frozen=True)
class MemoryThresholdEvent:
    """Fires when memory usage crosses *threshold* bytes."""

    threshold: int
    swap: bool = False

    def arg(self) -> str:
        return str(self.threshold)

    def event_file(self) -> str:
        if self.swap:
            return "memory.memsw.usage_in_bytes"
        return "memory.usage_in_bytes"


@dataclass(frozen=True)
class OOMEvent:
    """Fires when a process in the cgroup hits an out-of-memory condition."""

    def arg(self) -> str:
        return ""

    def event_file(self) -> str:
        return "memory.oom_control"


@dataclass(frozen=True)
class MemoryPressureEvent:
    """Fires when the cgroup reaches a memory pressure level."""

    pressure_level: MemoryPressureLevel
    hierarchy: EventNotificationMode

    def arg(self) -> str:
        return f"{MemoryPressureLevel(self.pressure_level).value},{EventNotificationMode(self.hierarchy).value}"

    def event_file(self) -> str:
        return "memory.pressure_level"


def _memory_settings(mem: LinuxMemory) -> List[Tuple[str, Optional[int]]]:
    return [
        ("limit_in_bytes", mem.limit),
        ("soft_limit_in_bytes", mem.reservation),
        ("memsw.limit_in_bytes", mem.swap),
        ("kmem.limit_in_bytes", mem.kernel),
        ("kmem.tcp.limit_in_bytes", mem.kernel_tcp),
        ("oom_control", 1 if mem.disable_oom_killer else None),
        ("swappiness", mem.swappiness),
    ]


def _parse_raw(stream: Union[IO[str], Iterable[str]]) -> Dict[str, int]:
    raw: Dict[str, int] = {}
    for number, line in enumerate(stream):
        try:
            key, value = parse_kv(line.rstrip("\n"))
        except (CgroupError, ValueError) as err:
            raise CgroupError(f"{number}: {err}") from err
        raw[key] = value
    return raw


class MemoryController:
    """Controller for the memory subsystem.

    Modules named in *ignore_modules* (such as ``"memsw"``) are not read by
    :meth:`stat`. With *optional_swap*, ``memsw`` is ignored when the root
    has no swap accounting files.
    """

    def __init__(
        self,
        root: str,
        ignore_modules: Iterable[str] = (),
        optional_swap: bool = False,
    ) -> None:
        self.root = _join(root, Name.MEMORY.value)
        self.ignored = set(ignore_modules)
        if optional_swap and not os.path.exists(
            os.path.join(self.root, "memory.memsw.usage_in_bytes")
        ):
            self.ignored.add("memsw")

    def name(self) -> Name:
        return Name.MEMORY

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        os.makedirs(self.path(path), DEFAULT_DIR_PERM, exist_ok=True)
        if resources.memory is None:
            return
        self._set(path, _memory_settings(resources.memory))

    def update(self, path: str, resources: LinuxResources) -> None:
        mem = resources.memory
        if mem is None:
            return
        settings = _memory_settings(mem)
        if mem.limit is not None and mem.limit > 0 and mem.swap is not None and mem.swap > 0:
            # Swap must stay above the limit, so order the writes accordingly.
            current = read_uint(os.path.join(self.path(path), "memory.limit_in_bytes"))
            if current < mem.swap:
                settings[0], settings[1] = settings[1], settings[0]
        self._set(path, settings)

    def stat(self, path: str, stats: Metrics) -> None:
        directory = self.path(path)
        memory = MemoryStat(
            usage=MemoryEntry(),
            swap=MemoryEntry(),
            kernel=MemoryEntry(),
            kernel_tcp=MemoryEntry(),
        )
        stats.memory = memory
        with open(os.path.join(directory, "memory.stat"), encoding="utf-8") as fh:
            self.parse_stats(fh, memory)

        oom = MemoryOomControl()
        stats.memory_oom_control = oom
        with open(os.path.join(directory, "memory.oom_control"), encoding="utf-8") as fh:
            self.parse_oom_control_stats(fh, oom)

        for module, attr in _MODULES:
            if module in self.ignored:
                continue
            entry = getattr(memory, attr)
            prefix = "memory." + module + "." if module else "memory."
            for name, field in _ENTRY_FIELDS:
                setattr(entry, field, read_uint(os.path.join(directory, prefix + name)))

    def parse_stats(self, stream: Union[IO[str], Iterable[str]], stat: MemoryStat) -> None:
        """Fill *stat* from the lines of a memory.stat file."""
        raw = _parse_raw(stream)
        for key, attr in _STAT_FIELDS:
            setattr(stat, attr, raw.get(key, 0))

    def parse_oom_control_stats(
        self, stream: Union[IO[str], Iterable[str]], stat: MemoryOomControl
    ) -> None:
        """Fill *stat* from the lines of a memory.oom_control file."""
        raw = _parse_raw(stream)
        for key, attr in _OOM_FIELDS:
            setattr(stat, attr, raw.get(key, 0))

    def register_event(self, path: str, event: MemoryEvent) -> int:
        """Register *event* for the cgroup and return an eventfd that signals it."""
        root = self.path(path)
        efd = os.eventfd(0, os.EFD_CLOEXEC)
        try:
            with open(os.path.join(root, event.event_file()), "rb") as evt:
                data = f"{efd} {evt.fileno()} {event.arg()}"
                control = os.path.join(root, "cgroup.event_control")
                fd = os.open(control, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o700)
                with os.fdopen(fd, "w", encoding="utf-8") as out:
                    out.write(data)
        except BaseException:
            os.close(efd)
            raise
        return efd

    def _set(self, path: str, settings: List[Tuple[str, Optional[int]]]) -> None:
        directory = self.path(path)
        for name, value in settings:
            if value is not None:
                with open(os.path.join(directory, "memory." + name), "w", encoding="utf-8") as fh:
                    fh.write(str(value))