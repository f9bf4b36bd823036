"""Subsystem names, cgroup states and the subsystem protocol."""

from __future__ import annotations

import os
from enum import Enum
from typing import Callable, List, Protocol, runtime_checkable

from .errors import CgroupError


class Name(str, Enum):
    """Name of a cgroup v1 subsystem."""

    DEVICES = "devices"
    HUGETLB = "hugetlb"
    FREEZER = "freezer"
    PIDS = "pids"
    NET_CLS = "net_cls"
    NET_PRIO = "net_prio"
    PERF_EVENT = "perf_event"
    CPUSET = "cpuset"
    CPU = "cpu"
    CPUACCT = "cpuacct"
    MEMORY = "memory"
    BLKIO = "blkio"
    RDMA = "rdma"
    SYSTEMD = "systemd"

    def __str__(self) -> str:
        return self.value

    def __hash__(self) -> int:
        return str.__hash__(self)


class State(str, Enum):
    """State of a cgroup and the processes inside it."""

    UNKNOWN = ""
    THAWED = "thawed"
    FROZEN = "frozen"
    FREEZING = "freezing"
    DELETED = "deleted"

    def __str__(self) -> str:
        return self.value

    def __hash__(self) -> int:
        return str.__hash__(self)


@runtime_checkable
class Subsystem(Protocol):
    """Anything that names a cgroup subsystem."""

    def name(self) -> str: ...


Hierarchy = Callable[[], List[Subsystem]]

_FULL_UID_MAP = ["0", "0", "4294967295"]


def _running_in_user_ns() -> bool:
    try:
        with open("/proc/self/uid_map", encoding="utf-8") as fh:
            fields = fh.readline().split()
    except OSError:
        return False
    if len(fields) != 3:
        return False
    return fields != _FULL_UID_MAP


def subsystems() -> list[Name]:
    """Return the default subsystems available on most Linux systems."""
    names = [
        Name.FREEZER,
        Name.PIDS,
        Name.NET_CLS,
        Name.NET_PRIO,
        Name.PERF_EVENT,
        Name.CPUSET,
        Name.CPU,
        Name.CPUACCT,
        Name.MEMORY,
        Name.BLKIO,
        Name.RDMA,
    ]
    if not _running_in_user_ns():
        names.append(Name.DEVICES)
    if os.path.exists("/sys/kernel/mm/hugepages"):
        names.append(Name.HUGETLB)
    return names


def single_subsystem(base_hierarchy: Hierarchy, subsystem: str) -> Hierarchy:
    """Return a hierarchy holding only *subsystem* out of *base_hierarchy*."""

    def hierarchy() -> list[Subsystem]:
        for candidate in base_hierarchy():
            if candidate.name() == subsystem:
                return [candidate]
        raise CgroupError(f"unable to find subsystem {subsystem}")

    return hierarchy