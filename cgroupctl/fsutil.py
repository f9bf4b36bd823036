"""Helpers for reading values out of cgroup files."""

from __future__ import annotations

import os
import re

from .errors import InvalidFormatError

_CLOCK_TICKS = 100
_INTEGER = re.compile(r"-?[0-9A-Za-z]+\Z")


def clock_ticks() -> int:
    """Return the kernel clock ticks per second used by cpuacct.stat."""
    return _CLOCK_TICKS


def parse_uint(text: str, base: int = 10, bit_size: int = 64) -> int:
    """Parse an unsigned integer of at most *bit_size* bits.

    Negative values, which the kernel reports for some unlimited settings,
    read as 0.
    """
    if not _INTEGER.match(text):
        raise ValueError(f"invalid unsigned integer {text!r}")
    value = int(text, base)
    if value < 0:
        return 0
    if value >= 1 << bit_size:
        raise ValueError(f"value {text!r} out of range for {bit_size} bits")
    return value


def read_uint(path: str | os.PathLike[str]) -> int:
    """Read a single unsigned integer from the file at *path*."""
    with open(path, "rb") as fh:
        text = fh.read().decode("utf-8", "replace").strip()
    return parse_uint(text, 10, 64)


def parse_kv(line: str) -> tuple[str, int]:
    """Split a ``key value`` line into its key and unsigned value."""
    parts = line.split()
    if len(parts) != 2:
        raise InvalidFormatError()
    return parts[0], parse_uint(parts[1], 10, 64)


def read_pids(path: str, subsystem: str, proc_type: str) -> list:
    """Read the processes listed in *proc_type* inside the directory *path*."""
    from .cgroup import Process

    with open(os.path.join(path, proc_type), encoding="utf-8") as fh:
        return [
            Process(subsystem=subsystem, pid=int(line), path=path)
            for line in (raw.rstrip("\n") for raw in fh)
            if line
        ]