"""The freezer subsystem controller."""

from __future__ import annotations

import os
import time

from .errors import InvalidFormatError
from .names import Name, State

_POLL_INTERVAL = 0.001


def _join(*parts: str) -> str:
    joined = "/".join(part for part in parts if part)
    if not joined:
        return ""
    cleaned = os.path.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


class FreezerController:
    """Controller for the freezer subsystem."""

    def __init__(self, root: str) -> None:
        self.root = _join(root, Name.FREEZER.value)

    def name(self) -> Name:
        return Name.FREEZER

    def path(self, path: str) -> str:
        return _join(self.root, path)

    def freeze(self, path: str) -> None:
        """Freeze every process in the cgroup and wait until it is frozen."""
        self._wait_state(path, State.FROZEN)

    def thaw(self, path: str) -> None:
        """Resume every process in the cgroup and wait until it is thawed."""
        self._wait_state(path, State.THAWED)

    def state(self, path: str) -> State:
        """Return the current freezer state of the cgroup."""
        with open(self._state_file(path), "rb") as fh:
            text = fh.read().decode("utf-8", "replace").strip().lower()
        try:
            return State(text)
        except ValueError:
            raise InvalidFormatError(f"unknown freezer state {text!r}") from None

    def _state_file(self, path: str) -> str:
        return os.path.join(self.path(path), "freezer.state")

    def _change_state(self, path: str, state: State) -> None:
        with open(self._state_file(path), "w", encoding="utf-8") as fh:
            fh.write(state.value.upper())

    def _wait_state(self, path: str, state: State) -> None:
        while True:
            self._change_state(path, state)
            if self.state(path) == state:
                return
            time.sleep(_POLL_INTERVAL)