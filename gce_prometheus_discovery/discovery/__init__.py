"""GCE discovery package: inventory client Protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .deadline import Deadline
    from .models import Instance


@runtime_checkable
class InventoryClient(Protocol):
    """Protocol that every instance inventory client must satisfy."""

    def list_instances(self, project: str, deadline: Deadline) -> list[Instance]:
        """Return every instance in ``project``, or raise FetchError."""
        ...
