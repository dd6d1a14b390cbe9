"""Local disk driver."""

from __future__ import annotations

from diskfoundry.adapters.local import LocalAdapter
from diskfoundry.driver import Driver
from diskfoundry.visibility import PortableVisibilityConverter, Visibility

__all__ = ["LocalDriver"]


class LocalDriver(Driver):
    """Files below ``root`` on the local disk.

    ``permissions`` overrides the unix modes used for each visibility and
    ``visibility`` is the default given to directories created on the way.
    """

    kind = "local"

    def create_adapter(self) -> LocalAdapter:
        converter = PortableVisibilityConverter.from_mapping(
            self.config.get("permissions") or {},
            self.config.visibility or Visibility.PRIVATE,
        )
        return LocalAdapter(
            self.config.root,
            converter,
            lock=self.config.get("lock", True),
            links=self.config.get("links", "disallow"),
        )
