import os
from dataclasses import dataclass

import pytest

from cgroupctl.blkio import BlkioController
from cgroupctl.cgroup import Cgroup, Process, load, new
from cgroupctl.cpu import CpuacctController, CpuController
from cgroupctl.cpuset import CpusetController
from cgroupctl.devices import DevicesController
from cgroupctl.errors import (
    CgroupDeletedError,
    CgroupError,
    ControllerNotActiveError,
    DevicesRequiredError,
    FreezerNotSupportedError,
    InvalidPidError,
    ignore_not_exist,
)
from cgroupctl.freezer import FreezerController
from cgroupctl.hugetlb import HugetlbController
from cgroupctl.memory import MemoryController
from cgroupctl.names import Name, State, single_subsystem, subsystems
from cgroupctl.options import allow_any
from cgroupctl.paths import error_path, static_path
from cgroupctl.pids import PidsController
from cgroupctl.rdma import RdmaController
from cgroupctl.resources import LinuxPids, LinuxResources
from cgroupctl.simple import NetClsController, NetPrioController, PerfEventController

_FACTORIES = {
    Name.FREEZER: FreezerController,
    Name.PIDS: PidsController,
    Name.NET_CLS: NetClsController,
    Name.NET_PRIO: NetPrioController,
    Name.PERF_EVENT: PerfEventController,
    Name.CPUSET: CpusetController,
    Name.CPU: CpuController,
    Name.CPUACCT: CpuacctController,
    Name.MEMORY: MemoryController,
    Name.BLKIO: BlkioController,
    Name.RDMA: RdmaController,
    Name.DEVICES: DevicesController,
    Name.HUGETLB: lambda root: HugetlbController(root, ()),
}


@dataclass
class Mock:
    root: str

    def hierarchy(self):
        return [_FACTORIES[name](self.root) for name in subsystems()]


@pytest.fixture
def mock(tmp_path):
    root = str(tmp_path)
    for name in subsystems():
        os.makedirs(os.path.join(root, name.value), exist_ok=True)
    for file_name in ("cpuset.cpus", "cpuset.mems"):
        with open(os.path.join(root, "cpuset", file_name), "w") as fh:
            fh.write("0-3")
    return Mock(root)


def _read(mock, *parts):
    with open(os.path.join(mock.root, *parts)) as fh:
        return fh.read()


def _pid(mock, subsystem, *parts, file_name="cgroup.procs"):
    return int(_read(mock, subsystem, *parts, file_name))


def _control(mock):
    return new(static_path("test"), LinuxResources(), mock.hierarchy)


def test_create(mock):
    control = _control(mock)
    assert [s.name() for s in control.subsystems()] == subsystems()
    for name in subsystems():
        assert os.path.isdir(os.path.join(mock.root, name.value, "test"))


def test_stat_ignore_not_exist(mock):
    stats = _control(mock).stat(ignore_not_exist)
    assert stats.pids is None
    assert stats.rdma is None
    assert stats.hugetlb == []
    assert stats.cpu.usage.total == 0


def test_stat_without_handler_raises(mock):
    with pytest.raises(FileNotFoundError):
        _control(mock).stat()


def test_add(mock):
    control = _control(mock)
    control.add(Process(pid=1234))
    for name in subsystems():
        assert _pid(mock, name.value, "test") == 1234


def test_add_filtered_subsystems(mock):
    control = _control(mock)
    filtered = [Name.MEMORY, Name.CPU]
    control.add(Process(pid=1234), *filtered)
    for name in filtered:
        assert _pid(mock, name.value, "test") == 1234
    assert not os.path.exists(os.path.join(mock.root, "devices", "test", "cgroup.procs"))

    control.add(Process(pid=5678), *filtered, "bogus")
    for name in filtered:
        assert _pid(mock, name.value, "test") == 5678

    control.add(Process(pid=9012))
    for name in subsystems():
        assert _pid(mock, name.value, "test") == 9012


def test_add_proc(mock):
    control = _control(mock)
    control.add_proc(4321)
    for name in subsystems():
        assert _pid(mock, name.value, "test") == 4321


def test_add_task(mock):
    control = _control(mock)
    control.add_task(Process(pid=1234))
    for name in subsystems():
        assert _pid(mock, name.value, "test", file_name="tasks") == 1234


def test_add_task_filtered_subsystems(mock):
    control = _control(mock)
    filtered = [Name.MEMORY, Name.CPU]
    control.add_task(Process(pid=1234), *filtered)
    for name in filtered:
        assert _pid(mock, name.value, "test", file_name="tasks") == 1234
    assert not os.path.exists(os.path.join(mock.root, "devices", "test", "tasks"))

    control.add_task(Process(pid=5678), *filtered, "bogus")
    for name in filtered:
        assert _pid(mock, name.value, "test", file_name="tasks") == 5678


def test_add_invalid_pid(mock):
    with pytest.raises(InvalidPidError):
        _control(mock).add(Process(pid=0))


def test_list_pids(mock):
    control = _control(mock)
    control.add(Process(pid=1234))
    procs = control.processes(Name.FREEZER, False)
    assert len(procs) == 1
    assert procs[0].pid == 1234
    assert procs[0].subsystem == Name.FREEZER


def test_list_tasks_pids(mock):
    control = _control(mock)
    control.add_task(Process(pid=1234))
    tasks = control.tasks(Name.FREEZER, False)
    assert len(tasks) == 1
    assert tasks[0].pid == 1234


def test_processes_recursive_includes_children(mock):
    control = _control(mock)
    control.add(Process(pid=1111))
    child = control.new("child", LinuxResources())
    child.add(Process(pid=2222))
    assert [p.pid for p in control.processes(Name.PIDS, False)] == [1111]
    assert sorted(p.pid for p in control.processes(Name.PIDS, True)) == [1111, 2222]


def test_load(mock):
    _control(mock)
    control = load(static_path("test"), mock.hierarchy)
    assert {s.name() for s in control.subsystems()} == set(subsystems())


def test_load_missing_cgroup(mock):
    with pytest.raises(CgroupDeletedError):
        load(static_path("missing"), mock.hierarchy)


def test_delete(mock):
    control = _control(mock)
    control.delete()
    for name in subsystems():
        assert not os.path.exists(os.path.join(mock.root, name.value, "test"))
    with pytest.raises(CgroupDeletedError):
        control.add(Process(pid=1))
    assert control.state() == State.DELETED


def test_delete_with_running_processes(mock):
    control = _control(mock)
    control.add(Process(pid=1234))
    with pytest.raises(CgroupError, match="contains running processes"):
        control.delete()


def test_create_sub_cgroup(mock):
    control = _control(mock)
    sub = control.new("child", LinuxResources())
    sub.add(Process(pid=1234))
    for name in subsystems():
        assert _pid(mock, name.value, "test", "child") == 1234
    sub.add_task(Process(pid=5678))
    for name in subsystems():
        assert _pid(mock, name.value, "test", "child", file_name="tasks") == 5678


def test_freeze_thaw(mock):
    control = _control(mock)
    control.freeze()
    assert control.state() == State.FROZEN
    control.thaw()
    assert control.state() == State.THAWED


def test_freeze_without_freezer(mock):
    hierarchy = single_subsystem(mock.hierarchy, Name.PIDS)
    control = new(static_path("test"), LinuxResources(), hierarchy)
    assert [s.name() for s in control.subsystems()] == [Name.PIDS]
    with pytest.raises(FreezerNotSupportedError):
        control.freeze()
    assert control.state() == State.THAWED
    with pytest.raises(CgroupError):
        control.processes(Name.FREEZER, False)


def test_subsystems(mock):
    control = _control(mock)
    names = {s.name() for s in control.subsystems()}
    for name in subsystems():
        assert name in names


def test_cpuset_parent(mock):
    new(static_path("/parent/child"), LinuxResources(), mock.hierarchy)
    for file_name in (
        "parent/cpuset.cpus",
        "parent/cpuset.mems",
        "parent/child/cpuset.cpus",
        "parent/child/cpuset.mems",
    ):
        assert _read(mock, "cpuset", file_name) == "0-3"


def test_update_writes_pids_limit(mock):
    control = _control(mock)
    control.update(LinuxResources(pids=LinuxPids(limit=10)))
    assert _read(mock, "pids", "test", "pids.max") == "10"


def test_move_to(mock):
    control = _control(mock)
    control.add(Process(pid=1234))
    other = new(static_path("other"), LinuxResources(), mock.hierarchy)
    control.move_to(other)
    assert _pid(mock, "pids", "other") == 1234


def test_inactive_controllers_with_allow_any(mock):
    path = error_path(ControllerNotActiveError())
    control = new(path, LinuxResources(), mock.hierarchy, allow_any)
    assert control.subsystems() == []


def test_inactive_devices_required(mock):
    def hierarchy():
        return [DevicesController(mock.root)]

    with pytest.raises(DevicesRequiredError):
        new(error_path(ControllerNotActiveError()), LinuxResources(), hierarchy)


def test_cgroup_constructed_directly(mock):
    control = Cgroup(static_path("test"), [PidsController(mock.root)])
    sub = control.new("leaf", LinuxResources(pids=LinuxPids(limit=7)))
    assert [s.name() for s in sub.subsystems()] == [Name.PIDS]
    assert _read(mock, "pids", "test", "leaf", "pids.max") == "7"