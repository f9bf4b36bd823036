import os
from unittest import mock

import pytest

from cgroupctl.errors import CgroupError
from cgroupctl.names import Name, State, Subsystem, single_subsystem, subsystems


class _Stub:
    def __init__(self, name):
        self._name = name

    def name(self):
        return self._name


def test_name_compares_and_hashes_as_string():
    cpu = Name("cpu")
    assert cpu == "cpu"
    assert {"cpu": 7}[cpu] == 7
    assert str(Name("net_cls")) == "net_cls"
    assert f"{Name('perf_event')}" == "perf_event"


def test_name_lookup_by_value():
    assert Name("memory") is Name.MEMORY


def test_name_joins_into_paths():
    assert os.path.join("/test/folder", Name("blkio")) == "/test/folder/blkio"


def test_state_values():
    assert State("") is State.UNKNOWN
    assert State("frozen") is State.FROZEN
    assert str(State.THAWED) == "thawed"


def test_subsystems_starts_with_default_list():
    names = subsystems()
    assert names[:11] == [
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
    assert set(names[11:]) <= {Name.DEVICES, Name.HUGETLB}


def test_subsystems_without_hugepages():
    with mock.patch("cgroupctl.names.os.path.exists", return_value=False):
        names = subsystems()
    assert Name.HUGETLB not in names


def test_subsystems_with_hugepages():
    with mock.patch("cgroupctl.names.os.path.exists", return_value=True):
        names = subsystems()
    assert names[-1] == Name.HUGETLB


def test_stub_satisfies_protocol():
    stub = _Stub(Name.CPU)
    picked = single_subsystem(lambda: [stub], Name("cpu"))()
    assert picked == [stub]
    assert isinstance(picked[0], Subsystem)


def test_single_subsystem_picks_match():
    cpu = _Stub(Name.CPU)
    mem = _Stub(Name.MEMORY)
    hierarchy = single_subsystem(lambda: [cpu, mem], Name.MEMORY)
    assert hierarchy() == [mem]


def test_single_subsystem_missing_raises():
    hierarchy = single_subsystem(lambda: [_Stub(Name.CPU)], Name.RDMA)
    with pytest.raises(CgroupError, match="unable to find subsystem rdma"):
        hierarchy()


def test_single_subsystem_propagates_base_error():
    def broken():
        raise CgroupError("no hierarchy")

    with pytest.raises(CgroupError, match="no hierarchy"):
        single_subsystem(broken, Name.CPU)()