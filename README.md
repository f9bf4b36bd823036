# cgroupctl

`cgroupctl` is a library for managing Linux control groups on the v1
(split) hierarchy. It creates groups, applies resource limits, moves
processes and threads into groups, freezes and thaws them, registers
memory notifications and reads usage statistics.

## Installation

```
pip install cgroupctl
```

The package has no runtime dependencies. It needs a Linux system with
cgroup v1 controllers mounted, normally under `/sys/fs/cgroup`. Writing
to that tree usually requires root.

## Concepts

- **Controllers** correspond to cgroup v1 subsystems. Each one is built
  from the hierarchy root and knows its own directory below it:
  - `cgroupctl.blkio.BlkioController(root, proc_root="/proc")`
  - `cgroupctl.cpu.CpuController(root)` and `CpuacctController(root)`
  - `cgroupctl.cpuset.CpusetController(root)` (copies `cpuset.cpus` and
    `cpuset.mems` down from parent groups when a group has none)
  - `cgroupctl.memory.MemoryController(root, ignore_modules=(), optional_swap=False)`
  - `cgroupctl.devices.DevicesController(root)`
  - `cgroupctl.freezer.FreezerController(root)`
  - `cgroupctl.hugetlb.HugetlbController(root, sizes=())`
  - `cgroupctl.pids.PidsController(root)`
  - `cgroupctl.rdma.RdmaController(root)`
  - `cgroupctl.simple.NetClsController`, `NetPrioController`,
    `PerfEventController` and `NamedController(root, name)`
- **Names** of the subsystems are members of `cgroupctl.names.Name`.
  `subsystems()` returns the default set for the running system
  (`devices` is left out inside a user namespace, `hugetlb` is included
  only when `/sys/kernel/mm/hugepages` exists).
- **A hierarchy** is a callable that takes no arguments and returns the
  list of controllers to use. `single_subsystem(base, name)` narrows a
  hierarchy to one controller.
- **A path** is a callable that takes a subsystem name and returns the
  group's path inside that subsystem. `cgroupctl.paths` provides
  `static_path`, `root_path`, `sub_path`, `error_path` and `slice_path`.
- **Resources** are described with `cgroupctl.resources.LinuxResources`
  and its companion dataclasses: `LinuxCPU`, `LinuxMemory`, `LinuxPids`,
  `LinuxBlockIO`, `LinuxDeviceCgroup`, `LinuxHugepageLimit`,
  `LinuxNetwork`, `LinuxRdma` and the others.
- **Metrics** come back as `cgroupctl.stats.Metrics`, holding
  `CPUStat`, `MemoryStat`, `BlkIOStat`, `PidsStat`, `HugetlbStat` and
  `RdmaStat` values.

## Example

```python
from cgroupctl.cgroup import Process, new, load
from cgroupctl.cpu import CpuController
from cgroupctl.memory import MemoryController
from cgroupctl.freezer import FreezerController
from cgroupctl.names import Name
from cgroupctl.paths import static_path
from cgroupctl.resources import LinuxResources, LinuxMemory

root = "/sys/fs/cgroup"

def hierarchy():
    return [
        FreezerController(root),
        CpuController(root),
        MemoryController(root),
    ]

resources = LinuxResources(memory=LinuxMemory(limit=256 * 1024 * 1024))
group = new(static_path("/demo"), resources, hierarchy=hierarchy)

group.add(Process(pid=1234))
group.freeze()
print(group.state())          # frozen
group.thaw()

metrics = group.stat()
print(metrics.memory.usage.limit)

print(group.processes(Name.MEMORY, recursive=True))

# Reattach to the same group later.
same = load(static_path("/demo"), hierarchy=hierarchy)
same.delete()
```

A `Cgroup` also offers `new` (child groups), `add_proc`, `add_task`,
`tasks`, `update`, `move_to` and `subsystems`.

## Memory notifications

`Cgroup.register_memory_event(event)` returns an eventfd that becomes
readable when the event fires; `Cgroup.oom_event_fd()` is the shortcut
for out-of-memory events. Events live in `cgroupctl.memory`:

```python
from cgroupctl.memory import (
    EventNotificationMode, MemoryPressureEvent, MemoryPressureLevel,
    MemoryThresholdEvent,
)

fd = group.register_memory_event(MemoryThresholdEvent(512 * 1024 * 1024))
fd = group.register_memory_event(
    MemoryPressureEvent(MemoryPressureLevel.CRITICAL, EventNotificationMode.LOCAL)
)
```

## Errors

Failures raise exceptions derived from `CgroupError`, found in
`cgroupctl.errors`, such as `InvalidPidError`, `CgroupDeletedError`,
`FreezerNotSupportedError`, `MemoryNotSupportedError` and
`ControllerNotActiveError`. Filesystem problems are raised as the usual
`OSError` subclasses, and malformed numbers as `ValueError`.

`Cgroup.stat` accepts error handlers. Passing `ignore_not_exist` skips
controllers whose statistics files are missing instead of failing.

```python
from cgroupctl.errors import ignore_not_exist

metrics = group.stat(ignore_not_exist)
```

## Initialisation checks

If a path function raises `ControllerNotActiveError` for a controller,
`new` and `load` call an init check to decide what to do. The default,
`require_devices`, fails with `DevicesRequiredError` only for the
`devices` controller and skips the rest; `allow_any` skips every
inactive controller. Both live in `cgroupctl.options`, alongside the
`InitConfig` dataclass.

## What the package does not do

- It does not discover mounted controllers. There is no ready-made
  hierarchy: you list the controllers and pass their root yourself.
- It does not read `/proc/self/cgroup` to locate the current process's
  groups; paths come from the path functions listed above.
- It does not detect huge page sizes; pass them to `HugetlbController`.
- It does not talk to systemd. `slice_path` and `split_name` only build
  and split slice paths; no units are created.
- It handles the cgroup v1 hierarchy only, and has no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```

The tests build a fake cgroup tree in a temporary directory. They do
not need root or a real cgroup mount.