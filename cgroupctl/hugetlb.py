"""The hugetlb subsystem controller."""

from __future__ import annotations

import os
from typing import Iterable

from .fsutil import read_uint
from .names import Name
from .resources import LinuxResources
from .stats import HugetlbStat, Metrics

DEFAULT_DIR_PERM = 0o755


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


class HugetlbController:
    """Controller for the hugetlb subsystem.

    *sizes* lists the huge page sizes (such as ``"2MB"``) whose statistics
    :meth:`stat` reads.
    """

    def __init__(self, root: str, sizes: Iterable[str] = ()) -> None:
        self.root = _join(root, Name.HUGETLB.value)
        self.sizes = list(sizes)

    def name(self) -> Name:
        return Name.HUGETLB

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        for limit in resources.hugepage_limits:
            target = os.path.join(directory, f"hugetlb.{limit.pagesize}.limit_in_bytes")
            with open(target, "w", encoding="utf-8") as fh:
                fh.write(str(limit.limit))

    def stat(self, path: str, stats: Metrics) -> None:
        for size in self.sizes:
            stats.hugetlb.append(self._read_size_stat(path, size))

    def _read_size_stat(self, path: str, size: str) -> HugetlbStat:
        directory = self.path(path)

        def read(name: str) -> int:
            return read_uint(os.path.join(directory, f"hugetlb.{size}.{name}"))

        return HugetlbStat(
            usage=read("usage_in_bytes"),
            max=read("max_usage_in_bytes"),
            failcnt=read("failcnt"),
            pagesize=size,
        )