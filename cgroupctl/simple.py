"""Named, perf_event, net_cls and net_prio subsystem controllers."""

from __future__ import annotations

import os

from .names import Name
from .resources import LinuxResources

DEFAULT_DIR_PERM = 0o755


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _write(path: str, data: str) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(data)


class NamedController:
    """Controller for a named hierarchy such as ``name=systemd``."""

    def __init__(self, root: str, name: str) -> None:
        self.root = root
        self._name = name

    def name(self) -> str:
        return self._name

    def path(self, path: str) -> str:
        return _join(self.root, str(self._name), path)


class PerfEventController:
    """Controller for the perf_event subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.PERF_EVENT.value)

    def name(self) -> Name:
        return Name.PERF_EVENT

    def path(self, path: str) -> str:
        return _join(self.root, path)


class NetClsController:
    """Controller for the net_cls subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.NET_CLS.value)

    def name(self) -> Name:
        return Name.NET_CLS

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        network = resources.network
        if network is not None and network.class_id is not None and network.class_id > 0:
            _write(os.path.join(directory, "net_cls.classid"), str(network.class_id))

    def update(self, path: str, resources: LinuxResources) -> None:
        self.create(path, resources)


class NetPrioController:
    """Controller for the net_prio subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.NET_PRIO.value)

    def name(self) -> Name:
        return Name.NET_PRIO

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        if resources.network is None:
            return
        for prio in resources.network.priorities:
            _write(
                os.path.join(directory, "net_prio.ifpriomap"),
                f"{prio.name} {prio.priority}",
            )