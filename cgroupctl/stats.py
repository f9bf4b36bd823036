"""Metrics collected from cgroup subsystems."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Throttle:
    periods: int = 0
    throttled_periods: int = 0
    throttled_time: int = 0


@dataclass
class CPUUsage:
    """CPU time in nanoseconds."""

    total: int = 0
    kernel: int = 0
    user: int = 0
    per_cpu: List[int] = field(default_factory=list)


@dataclass
class CPUStat:
    usage: CPUUsage = field(default_factory=CPUUsage)
    throttling: Throttle = field(default_factory=Throttle)


@dataclass
class BlkIOEntry:
    op: str = ""
    device: str = ""
    major: int = 0
    minor: int = 0
    value: int = 0


@dataclass
class BlkIOStat:
    io_service_bytes_recursive: List[BlkIOEntry] = field(default_factory=list)
    io_serviced_recursive: List[BlkIOEntry] = field(default_factory=list)
    io_queued_recursive: List[BlkIOEntry] = field(default_factory=list)
    io_service_time_recursive: List[BlkIOEntry] = field(default_factory=list)
    io_wait_time_recursive: List[BlkIOEntry] = field(default_factory=list)
    io_merged_recursive: List[BlkIOEntry] = field(default_factory=list)
    io_time_recursive: List[BlkIOEntry] = field(default_factory=list)
    sectors_recursive: List[BlkIOEntry] = field(default_factory=list)


@dataclass
class MemoryEntry:
    limit: int = 0
    usage: int = 0
    max: int = 0
    failcnt: int = 0


@dataclass
class MemoryStat:
    cache: int = 0
    rss: int = 0
    rss_huge: int = 0
    mapped_file: int = 0
    dirty: int = 0
    writeback: int = 0
    pg_pg_in: int = 0
    pg_pg_out: int = 0
    pg_fault: int = 0
    pg_maj_fault: int = 0
    inactive_anon: int = 0
    active_anon: int = 0
    inactive_file: int = 0
    active_file: int = 0
    unevictable: int = 0
    hierarchical_memory_limit: int = 0
    hierarchical_swap_limit: int = 0
    total_cache: int = 0
    total_rss: int = 0
    total_rss_huge: int = 0
    total_mapped_file: int = 0
    total_dirty: int = 0
    total_writeback: int = 0
    total_pg_pg_in: int = 0
    total_pg_pg_out: int = 0
    total_pg_fault: int = 0
    total_pg_maj_fault: int = 0
    total_inactive_anon: int = 0
    total_active_anon: int = 0
    total_inactive_file: int = 0
    total_active_file: int = 0
    total_unevictable: int = 0
    usage: MemoryEntry = field(default_factory=MemoryEntry)
    swap: MemoryEntry = field(default_factory=MemoryEntry)
    kernel: MemoryEntry = field(default_factory=MemoryEntry)
    kernel_tcp: MemoryEntry = field(default_factory=MemoryEntry)


@dataclass
class MemoryOomControl:
    oom_kill_disable: int = 0
    under_oom: int = 0
    oom_kill: int = 0


@dataclass
class HugetlbStat:
    usage: int = 0
    max: int = 0
    failcnt: int = 0
    pagesize: str = ""


@dataclass
class PidsStat:
    current: int = 0
    limit: int = 0


@dataclass
class RdmaEntry:
    device: str = ""
    hca_handles: int = 0
    hca_objects: int = 0


@dataclass
class RdmaStat:
    current: List[RdmaEntry] = field(default_factory=list)
    limit: List[RdmaEntry] = field(default_factory=list)


@dataclass
class Metrics:
    """All metrics gathered for one cgroup."""

    hugetlb: List[HugetlbStat] = field(default_factory=list)
    pids: Optional[PidsStat] = None
    cpu: CPUStat = field(default_factory=CPUStat)
    memory: Optional[MemoryStat] = None
    memory_oom_control: Optional[MemoryOomControl] = None
    blkio: Optional[BlkIOStat] = None
    rdma: Optional[RdmaStat] = None