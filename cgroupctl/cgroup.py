"""Control of a cgroup across all of its v1 subsystems."""

from __future__ import annotations

import errno
import os
import shutil
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .errors import (
    CgroupDeletedError,
    CgroupError,
    ControllerNotActiveError,
    FreezerNotSupportedError,
    IgnoreSubsystem,
    InvalidPidError,
    MemoryNotSupportedError,
)
from .fsutil import read_pids
from .memory import MemoryEvent, OOMEvent
from .names import Hierarchy, Name, State, Subsystem
from .options import InitCheck, require_devices
from .paths import Path, sub_path
from .resources import LinuxResources
from .stats import Metrics

CGROUP_PROCS = "cgroup.procs"
CGROUP_TASKS = "tasks"
DEFAULT_DIR_PERM = 0o755
DEFAULT_FILE_PERM = 0o644

_WRITE_ATTEMPTS = 5
_WRITE_RETRY_DELAY = 0.03
_REMOVE_ATTEMPTS = 5
_REMOVE_DELAY = 0.01

ErrorHandler = Callable[[BaseException], Optional[BaseException]]


@dataclass
class Process:
    """A process or task found inside a cgroup."""

    subsystem: str = ""
    pid: int = 0
    path: str = ""


Task = Process


def _pathers(subsystems: Iterable[Subsystem]) -> List[Subsystem]:
    return [s for s in subsystems if callable(getattr(s, "path", None))]


def _initialize_subsystem(
    subsystem: Subsystem, path: Path, resources: LinuxResources
) -> None:
    create = getattr(subsystem, "create", None)
    if callable(create):
        create(path(subsystem.name()), resources)
    elif callable(getattr(subsystem, "path", None)):
        target = subsystem.path(path(subsystem.name()))  # type: ignore[attr-defined]
        os.makedirs(target, DEFAULT_DIR_PERM, exist_ok=True)


def _run_init_check(
    init_check: Optional[InitCheck],
    subsystem: Subsystem,
    path: Path,
    err: BaseException,
) -> None:
    if init_check is None:
        return
    try:
        init_check(subsystem, path, err)
    except IgnoreSubsystem:
        pass


def _remove(path: str) -> None:
    delay = _REMOVE_DELAY
    for attempt in range(_REMOVE_ATTEMPTS):
        if attempt:
            time.sleep(delay)
            delay *= 2
        if not os.path.lexists(path):
            return
        try:
            os.rmdir(path)
            return
        except OSError:
            pass
        try:
            shutil.rmtree(path)
            return
        except OSError:
            continue
    raise CgroupError(f'cgroups: unable to remove path "{path}"')


def _write_cgroup_procs(path: str, content: bytes) -> None:
    """Write *content* to *path*, retrying while the kernel answers EINVAL."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT, DEFAULT_FILE_PERM)
    try:
        for attempt in range(_WRITE_ATTEMPTS):
            try:
                os.write(fd, content)
                return
            except OSError as err:
                # A task still in TASK_NEW state is rejected with EINVAL.
                if err.errno != errno.EINVAL or attempt == _WRITE_ATTEMPTS - 1:
                    raise
                time.sleep(_WRITE_RETRY_DELAY)
    finally:
        os.close(fd)


def new(
    path: Path,
    resources: LinuxResources,
    hierarchy: Hierarchy,
    init_check: Optional[InitCheck] = require_devices,
) -> "Cgroup":
    """Create a cgroup at *path* in every subsystem of *hierarchy*.

    Subsystems whose controller is not active are passed to *init_check*,
    which decides whether to skip them or abort.
    """
    active: List[Subsystem] = []
    for subsystem in hierarchy():
        try:
            _initialize_subsystem(subsystem, path, resources)
        except ControllerNotActiveError as err:
            _run_init_check(init_check, subsystem, path, err)
            continue
        active.append(subsystem)
    return Cgroup(path, active)


def load(
    path: Path,
    hierarchy: Hierarchy,
    init_check: Optional[InitCheck] = require_devices,
) -> "Cgroup":
    """Load an existing cgroup, keeping only the subsystems where it exists."""
    active: List[Subsystem] = []
    for subsystem in _pathers(hierarchy()):
        try:
            resolved = path(subsystem.name())
        except FileNotFoundError:
            raise CgroupDeletedError() from None
        except ControllerNotActiveError as err:
            _run_init_check(init_check, subsystem, path, err)
            continue
        try:
            os.lstat(subsystem.path(resolved))  # type: ignore[attr-defined]
        except FileNotFoundError:
            continue
        active.append(subsystem)
    if not active:
        raise CgroupDeletedError()
    return Cgroup(path, active)


class Cgroup:
    """A cgroup spread over a set of active subsystems."""

    def __init__(self, path: Path, subsystems: Iterable[Subsystem]) -> None:
        self._path = path
        self._subsystems = list(subsystems)
        self._lock = threading.RLock()
        self._deleted = False

    def _check_alive(self) -> None:
        if self._deleted:
            raise CgroupDeletedError()

    def new(self, name: str, resources: LinuxResources) -> "Cgroup":
        """Create a child cgroup called *name*."""
        with self._lock:
            self._check_alive()
            path = sub_path(self._path, name)
            for subsystem in self._subsystems:
                _initialize_subsystem(subsystem, path, resources)
            return Cgroup(path, self._subsystems)

    def subsystems(self) -> List[Subsystem]:
        """Return the subsystems the cgroup uses."""
        return list(self._subsystems)

    def _filter(self, names: tuple) -> List[Subsystem]:
        if not names:
            return list(self._subsystems)
        return [s for s in self._subsystems if any(s.name() == n for n in names)]

    def add(self, process: Process, *args: str) -> None:
        """Move *process* into cgroup.procs of all, or only the named, subsystems."""
        self._add(process, CGROUP_PROCS, args)

    def add_proc(self, pid: int, *args: str) -> None:
        """Move the process with *pid* into the cgroup."""
        self._add(Process(pid=int(pid)), CGROUP_PROCS, args)

    def add_task(self, process: Process, *args: str) -> None:
        """Move a task (thread) into the tasks file of the cgroup."""
        self._add(process, CGROUP_TASKS, args)

    def _add(self, process: Process, proc_type: str, names: tuple) -> None:
        if process.pid <= 0:
            raise InvalidPidError()
        with self._lock:
            self._check_alive()
            for subsystem in _pathers(self._filter(names)):
                resolved = self._path(subsystem.name())
                _write_cgroup_procs(
                    os.path.join(subsystem.path(resolved), proc_type),  # type: ignore[attr-defined]
                    str(process.pid).encode(),
                )

    def delete(self) -> None:
        """Remove the cgroup from every subsystem."""
        with self._lock:
            self._check_alive()
            failed: List[str] = []
            for subsystem in self._subsystems:
                name = subsystem.name()
                if self._processes(name, True, CGROUP_PROCS):
                    failed.append(f"{name} (contains running processes)")
                    continue
                deleter = getattr(subsystem, "delete", None)
                if callable(deleter):
                    resolved = self._path(name)
                    try:
                        deleter(resolved)
                    except Exception:
                        failed.append(str(name))
                    continue
                pather = getattr(subsystem, "path", None)
                if callable(pather):
                    target = pather(self._path(name))
                    try:
                        _remove(target)
                    except Exception:
                        failed.append(target)
            if failed:
                raise CgroupError(
                    "cgroups: unable to remove paths " + ", ".join(failed)
                )
            self._deleted = True

    def stat(self, *args: ErrorHandler) -> Metrics:
        """Collect metrics from every subsystem.

        Each error is passed through the handlers; an error any handler
        returns is raised after all subsystems were read. Without handlers
        every error is raised.
        """
        handlers = args
        with self._lock:
            self._check_alive()
            stats = Metrics()
            errors: List[BaseException] = []
            for subsystem in self._subsystems:
                reader = getattr(subsystem, "stat", None)
                if not callable(reader):
                    continue
                resolved = self._path(subsystem.name())
                try:
                    reader(resolved, stats)
                except Exception as err:
                    if not handlers:
                        errors.append(err)
                        continue
                    for handler in handlers:
                        result = handler(err)
                        if result is not None:
                            errors.append(result)
            if errors:
                raise errors[0]
            return stats

    def update(self, resources: LinuxResources) -> None:
        """Apply new resource settings to every subsystem that supports it."""
        with self._lock:
            self._check_alive()
            for subsystem in self._subsystems:
                updater = getattr(subsystem, "update", None)
                if callable(updater):
                    updater(self._path(subsystem.name()), resources)

    def processes(self, subsystem: str, recursive: bool) -> List[Process]:
        """Return the processes of the cgroup in *subsystem*."""
        with self._lock:
            self._check_alive()
            return self._processes(subsystem, recursive, CGROUP_PROCS)

    def tasks(self, subsystem: str, recursive: bool) -> List[Task]:
        """Return the tasks of the cgroup in *subsystem*."""
        with self._lock:
            self._check_alive()
            return self._processes(subsystem, recursive, CGROUP_TASKS)

    def _processes(self, subsystem: str, recursive: bool, proc_type: str) -> List[Process]:
        found = self._get_subsystem(subsystem)
        resolved = self._path(subsystem)
        if found is None:
            raise CgroupError(
                f"cgroups: {resolved} doesn't exist in {subsystem} subsystem"
            )
        root = found.path(resolved)  # type: ignore[attr-defined]
        os.lstat(root)
        processes: List[Process] = []
        walk_errors: List[OSError] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=walk_errors.append):
            if walk_errors:
                raise walk_errors[0]
            dirnames.sort()
            if proc_type in filenames:
                processes.extend(read_pids(dirpath, subsystem, proc_type))
            if not recursive:
                break
        if walk_errors:
            raise walk_errors[0]
        return processes

    def freeze(self) -> None:
        """Freeze every process in the cgroup."""
        with self._lock:
            self._check_alive()
            freezer = self._get_subsystem(Name.FREEZER)
            if freezer is None:
                raise FreezerNotSupportedError()
            freezer.freeze(self._path(Name.FREEZER))  # type: ignore[attr-defined]

    def thaw(self) -> None:
        """Resume every process in the cgroup."""
        with self._lock:
            self._check_alive()
            freezer = self._get_subsystem(Name.FREEZER)
            if freezer is None:
                raise FreezerNotSupportedError()
            freezer.thaw(self._path(Name.FREEZER))  # type: ignore[attr-defined]

    def oom_event_fd(self) -> int:
        """Return an eventfd that signals out-of-memory events."""
        return self.register_memory_event(OOMEvent())

    def register_memory_event(self, event: MemoryEvent) -> int:
        """Register a memory notification and return its eventfd."""
        with self._lock:
            self._check_alive()
            memory = self._get_subsystem(Name.MEMORY)
            if memory is None:
                raise MemoryNotSupportedError()
            return memory.register_event(self._path(Name.MEMORY), event)  # type: ignore[attr-defined]

    def state(self) -> State:
        """Return the state of the cgroup and its processes."""
        with self._lock:
            self._check_exists()
            if self._deleted:
                return State.DELETED
            freezer = self._get_subsystem(Name.FREEZER)
            if freezer is None:
                return State.THAWED
            try:
                return freezer.state(self._path(Name.FREEZER))  # type: ignore[attr-defined]
            except Exception:
                return State.UNKNOWN

    def move_to(self, destination: "Cgroup") -> None:
        """Move every process, subsystem by subsystem, into *destination*."""
        with self._lock:
            self._check_alive()
            for subsystem in self._subsystems:
                for process in self._processes(subsystem.name(), True, CGROUP_PROCS):
                    try:
                        destination.add(process)
                    except OSError as err:
                        if err.errno == errno.ESRCH:
                            continue
                        raise

    def _get_subsystem(self, name: str) -> Optional[Subsystem]:
        for subsystem in self._subsystems:
            if subsystem.name() == name:
                return subsystem
        return None

    def _check_exists(self) -> None:
        for subsystem in _pathers(self._subsystems):
            try:
                resolved = self._path(subsystem.name())
            except Exception:
                return
            if not os.path.lexists(subsystem.path(resolved)):  # type: ignore[attr-defined]
                self._deleted = True
                return