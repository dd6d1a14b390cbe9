"""In-memory driver, mostly useful for tests and scratch space."""

from __future__ import annotations

from diskfoundry.adapters.memory import MemoryAdapter
from diskfoundry.driver import Driver
from diskfoundry.visibility import Visibility

__all__ = ["MemoryDriver"]


class MemoryDriver(Driver):
    kind = "memory"

    def create_adapter(self) -> MemoryAdapter:
        return MemoryAdapter(default_visibility=(self.config.visibility or Visibility.PUBLIC).value)
