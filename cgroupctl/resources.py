"""Resource limits applied to a cgroup."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class LinuxCPU:
    shares: Optional[int] = None
    quota: Optional[int] = None
    period: Optional[int] = None
    realtime_runtime: Optional[int] = None
    realtime_period: Optional[int] = None
    cpus: str = ""
    mems: str = ""


@dataclass
class LinuxMemory:
    limit: Optional[int] = None
    reservation: Optional[int] = None
    swap: Optional[int] = None
    kernel: Optional[int] = None
    kernel_tcp: Optional[int] = None
    swappiness: Optional[int] = None
    disable_oom_killer: Optional[bool] = None


@dataclass
class LinuxWeightDevice:
    major: int = 0
    minor: int = 0
    weight: Optional[int] = None
    leaf_weight: Optional[int] = None


@dataclass
class LinuxThrottleDevice:
    major: int = 0
    minor: int = 0
    rate: int = 0


@dataclass
class LinuxBlockIO:
    weight: Optional[int] = None
    leaf_weight: Optional[int] = None
    weight_device: List[LinuxWeightDevice] = field(default_factory=list)
    throttle_read_bps_device: List[LinuxThrottleDevice] = field(default_factory=list)
    throttle_write_bps_device: List[LinuxThrottleDevice] = field(default_factory=list)
    throttle_read_iops_device: List[LinuxThrottleDevice] = field(default_factory=list)
    throttle_write_iops_device: List[LinuxThrottleDevice] = field(default_factory=list)


@dataclass
class LinuxDeviceCgroup:
    """A device access rule; a major or minor of None or -1 is a wildcard."""

    allow: bool = False
    type: str = ""
    major: Optional[int] = None
    minor: Optional[int] = None
    access: str = ""


@dataclass
class LinuxHugepageLimit:
    pagesize: str = ""
    limit: int = 0


@dataclass
class LinuxInterfacePriority:
    name: str = ""
    priority: int = 0


@dataclass
class LinuxNetwork:
    class_id: Optional[int] = None
    priorities: List[LinuxInterfacePriority] = field(default_factory=list)


@dataclass
class LinuxPids:
    limit: int = 0


@dataclass
class LinuxRdma:
    hca_handles: Optional[int] = None
    hca_objects: Optional[int] = None


@dataclass
class LinuxResources:
    """Resource settings for every subsystem of a cgroup."""

    devices: List[LinuxDeviceCgroup] = field(default_factory=list)
    memory: Optional[LinuxMemory] = None
    cpu: Optional[LinuxCPU] = None
    pids: Optional[LinuxPids] = None
    block_io: Optional[LinuxBlockIO] = None
    hugepage_limits: List[LinuxHugepageLimit] = field(default_factory=list)
    network: Optional[LinuxNetwork] = None
    rdma: Dict[str, LinuxRdma] = field(default_factory=dict)