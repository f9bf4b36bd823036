"""The devices subsystem controller."""

from __future__ import annotations

import dataclasses
import os
from typing import Optional

from .names import Name
from .resources import LinuxDeviceCgroup, LinuxResources

DEFAULT_DIR_PERM = 0o755
ALLOW_DEVICE_FILE = "devices.allow"
DENY_DEVICE_FILE = "devices.deny"
WILDCARD = -1


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _device_number(number: Optional[int]) -> str:
    if number is None or number == WILDCARD:
        return "*"
    return str(number)


def device_string(device: LinuxDeviceCgroup) -> str:
    """Format a device rule as written to devices.allow or devices.deny."""
    return (
        f"{device.type} {_device_number(device.major)}:"
        f"{_device_number(device.minor)} {device.access}"
    )


class DevicesController:
    """Controller for the devices subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.DEVICES.value)

    def name(self) -> Name:
        return Name.DEVICES

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def create(self, path: str, resources: LinuxResources) -> None:
        directory = self.path(path)
        os.makedirs(directory, DEFAULT_DIR_PERM, exist_ok=True)
        for device in resources.devices:
            target = ALLOW_DEVICE_FILE if device.allow else DENY_DEVICE_FILE
            if not device.type:
                device = dataclasses.replace(device, type="a")
            with open(os.path.join(directory, target), "w", encoding="utf-8") as fh:
                fh.write(device_string(device))

    def update(self, path: str, resources: LinuxResources) -> None:
        self.create(path, resources)