"""Exceptions raised while managing control groups."""

from __future__ import annotations


class CgroupError(Exception):
    """Base class for every error raised by this package."""

    default_message = "cgroups: error"

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or (self.default_message,)))


class InvalidPidError(CgroupError):
    """A process id was zero or negative."""

    default_message = "cgroups: pid must be greater than 0"


class MountPointNotExistError(CgroupError):
    """The cgroup mount point could not be found."""

    default_message = "cgroups: cgroup mountpoint does not exist"


class InvalidFormatError(CgroupError):
    """A cgroup file did not have the expected layout."""

    default_message = "cgroups: parsing file with invalid format failed"


class FreezerNotSupportedError(CgroupError):
    """The freezer controller is not available."""

    default_message = "cgroups: freezer cgroup not supported on this system"


class MemoryNotSupportedError(CgroupError):
    """The memory controller is not available."""

    default_message = "cgroups: memory cgroup not supported on this system"


class CgroupDeletedError(CgroupError):
    """The cgroup no longer exists."""

    default_message = "cgroups: cgroup deleted"


class NoCgroupMountDestinationError(CgroupError):
    """No mount destination was found for a controller."""

    default_message = "cgroups: cannot find cgroup mount destination"


class ControllerNotActiveError(CgroupError):
    """A controller is not supported or not enabled."""

    default_message = "controller is not supported"


class IgnoreSubsystem(CgroupError):
    """Raised by an init check to skip the subsystem it was given."""

    default_message = "skip subsystem"


class DevicesRequiredError(CgroupError):
    """The devices subsystem is required but not active."""

    default_message = "devices subsystem is required"


def ignore_not_exist(err: BaseException) -> BaseException | None:
    """Error handler that drops errors about files that do not exist."""
    if isinstance(err, FileNotFoundError):
        return None
    return err