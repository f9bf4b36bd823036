import io
import os

import pytest

from cgroupctl.errors import CgroupError
from cgroupctl.memory import (
    EventNotificationMode,
    MemoryController,
    MemoryEvent,
    MemoryPressureEvent,
    MemoryPressureLevel,
    MemoryThresholdEvent,
    OOMEvent,
)
from cgroupctl.names import Name
from cgroupctl.resources import LinuxMemory, LinuxResources
from cgroupctl.stats import MemoryOomControl, MemoryStat, Metrics

MEMORY_DATA = """cache 1
rss 2
rss_huge 3
mapped_file 4
dirty 5
writeback 6
pgpgin 7
pgpgout 8
pgfault 9
pgmajfault 10
inactive_anon 11
active_anon 12
inactive_file 13
active_file 14
unevictable 15
hierarchical_memory_limit 16
hierarchical_memsw_limit 17
total_cache 18
total_rss 19
total_rss_huge 20
total_mapped_file 21
total_dirty 22
total_writeback 23
total_pgpgin 24
total_pgpgout 25
total_pgfault 26
total_pgmajfault 27
total_inactive_anon 28
total_active_anon 29
total_inactive_file 30
total_active_file 31
total_unevictable 32
"""

MEMORY_OOM_CONTROL_DATA = """oom_kill_disable 1
under_oom 2
oom_kill 3
"""

ALL_MODULES = ["", "memsw", "kmem", "kmem.tcp"]
NO_SWAP_MODULES = ["", "kmem", "kmem.tcp"]
METRICS = ["usage_in_bytes", "max_usage_in_bytes", "failcnt", "limit_in_bytes"]


def build_memory_metrics(root, modules, metrics):
    directory = os.path.join(root, "memory")
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, "memory.stat"), "w") as fh:
        fh.write(MEMORY_DATA)
    with open(os.path.join(directory, "memory.oom_control"), "w") as fh:
        fh.write(MEMORY_OOM_CONTROL_DATA)
    count = 0
    for module in modules:
        for metric in metrics:
            parts = ["memory", module, metric] if module else ["memory", metric]
            with open(os.path.join(directory, ".".join(parts)), "w") as fh:
                fh.write(f"{count}\n")
            count += 1
    return str(root)


def entry_values(entry):
    return [entry.usage, entry.max, entry.failcnt, entry.limit]


def check_complete(mem):
    values = (
        entry_values(mem.usage)
        + entry_values(mem.swap)
        + entry_values(mem.kernel)
        + entry_values(mem.kernel_tcp)
    )
    assert values == list(range(16))


def check_no_swap(mem):
    assert entry_values(mem.swap) == [0, 0, 0, 0]
    values = entry_values(mem.usage) + entry_values(mem.kernel) + entry_values(mem.kernel_tcp)
    assert values == list(range(12))


def test_parse_memory_stats():
    stat = MemoryStat()
    MemoryController("").parse_stats(io.StringIO(MEMORY_DATA), stat)
    values = [
        stat.cache, stat.rss, stat.rss_huge, stat.mapped_file, stat.dirty,
        stat.writeback, stat.pg_pg_in, stat.pg_pg_out, stat.pg_fault,
        stat.pg_maj_fault, stat.inactive_anon, stat.active_anon,
        stat.inactive_file, stat.active_file, stat.unevictable,
        stat.hierarchical_memory_limit, stat.hierarchical_swap_limit,
        stat.total_cache, stat.total_rss, stat.total_rss_huge,
        stat.total_mapped_file, stat.total_dirty, stat.total_writeback,
        stat.total_pg_pg_in, stat.total_pg_pg_out, stat.total_pg_fault,
        stat.total_pg_maj_fault, stat.total_inactive_anon,
        stat.total_active_anon, stat.total_inactive_file,
        stat.total_active_file, stat.total_unevictable,
    ]
    assert values == list(range(1, 33))


def test_parse_memory_oom_control():
    stat = MemoryOomControl()
    MemoryController("").parse_oom_control_stats(io.StringIO(MEMORY_OOM_CONTROL_DATA), stat)
    assert [stat.oom_kill_disable, stat.under_oom, stat.oom_kill] == [1, 2, 3]


def test_parse_stats_reports_bad_line_number():
    stat = MemoryStat()
    with pytest.raises(CgroupError, match="^1: "):
        MemoryController("").parse_stats(io.StringIO("cache 1\nbroken\n"), stat)


def test_stat_complete(tmp_path):
    root = build_memory_metrics(tmp_path, ALL_MODULES, METRICS)
    metrics = Metrics()
    MemoryController(root).stat("", metrics)
    check_complete(metrics.memory)
    assert metrics.memory.cache == 1
    assert metrics.memory_oom_control.oom_kill == 3


def test_stat_ignore_modules(tmp_path):
    root = build_memory_metrics(tmp_path, NO_SWAP_MODULES, METRICS)
    metrics = Metrics()
    MemoryController(root, ignore_modules=["memsw"]).stat("", metrics)
    check_no_swap(metrics.memory)


def test_stat_missing_swap_without_option_fails(tmp_path):
    root = build_memory_metrics(tmp_path, NO_SWAP_MODULES, METRICS)
    with pytest.raises(FileNotFoundError):
        MemoryController(root).stat("", Metrics())


def test_stat_optional_swap_has_swap(tmp_path):
    root = build_memory_metrics(tmp_path, ALL_MODULES, METRICS)
    metrics = Metrics()
    MemoryController(root, optional_swap=True).stat("", metrics)
    check_complete(metrics.memory)


def test_stat_optional_swap_no_swap(tmp_path):
    root = build_memory_metrics(tmp_path, NO_SWAP_MODULES, METRICS)
    metrics = Metrics()
    MemoryController(root, optional_swap=True).stat("", metrics)
    check_no_swap(metrics.memory)


def test_name_and_path(tmp_path):
    controller = MemoryController(str(tmp_path))
    assert controller.name() == Name.MEMORY
    assert controller.path("test") == os.path.join(str(tmp_path), "memory", "test")


def test_create_without_memory_makes_directory(tmp_path):
    controller = MemoryController(str(tmp_path))
    controller.create("test", LinuxResources())
    directory = controller.path("test")
    assert os.path.isdir(directory)
    assert os.listdir(directory) == []


def test_create_writes_settings(tmp_path):
    controller = MemoryController(str(tmp_path))
    memory = LinuxMemory(limit=1024, reservation=512, swappiness=60, disable_oom_killer=True)
    controller.create("test", LinuxResources(memory=memory))
    directory = controller.path("test")

    def read(name):
        with open(os.path.join(directory, name)) as fh:
            return fh.read()

    assert read("memory.limit_in_bytes") == "1024"
    assert read("memory.soft_limit_in_bytes") == "512"
    assert read("memory.swappiness") == "60"
    assert read("memory.oom_control") == "1"
    assert not os.path.exists(os.path.join(directory, "memory.memsw.limit_in_bytes"))


def test_update_without_memory_does_nothing(tmp_path):
    controller = MemoryController(str(tmp_path))
    controller.create("test", LinuxResources(memory=LinuxMemory(limit=50)))
    controller.update("test", LinuxResources())
    directory = controller.path("test")
    assert os.listdir(directory) == ["memory.limit_in_bytes"]
    with open(os.path.join(directory, "memory.limit_in_bytes")) as fh:
        assert fh.read() == "50"


def test_update_with_limit_and_swap_reads_current_limit(tmp_path):
    controller = MemoryController(str(tmp_path))
    os.makedirs(controller.path("test"))
    memory = LinuxMemory(limit=100, swap=200)
    with pytest.raises(FileNotFoundError):
        controller.update("test", LinuxResources(memory=memory))


def test_update_with_limit_and_swap(tmp_path):
    controller = MemoryController(str(tmp_path))
    controller.create("test", LinuxResources(memory=LinuxMemory(limit=50)))
    controller.update("test", LinuxResources(memory=LinuxMemory(limit=100, swap=200)))
    directory = controller.path("test")
    with open(os.path.join(directory, "memory.limit_in_bytes")) as fh:
        assert fh.read() == "100"
    with open(os.path.join(directory, "memory.memsw.limit_in_bytes")) as fh:
        assert fh.read() == "200"


def test_threshold_event():
    event = MemoryThresholdEvent(4096, False)
    assert event.arg() == "4096"
    assert event.event_file() == "memory.usage_in_bytes"
    assert MemoryThresholdEvent(4096, True).event_file() == "memory.memsw.usage_in_bytes"
    assert isinstance(event, MemoryEvent)


def test_oom_event():
    event = OOMEvent()
    assert event.arg() == ""
    assert event.event_file() == "memory.oom_control"


def test_pressure_event():
    event = MemoryPressureEvent(MemoryPressureLevel.CRITICAL, EventNotificationMode.HIERARCHY)
    assert event.arg() == "critical,hierarchy"
    assert event.event_file() == "memory.pressure_level"
    low = MemoryPressureEvent(MemoryPressureLevel.LOW, EventNotificationMode.LOCAL)
    assert low.arg() == "low,local"