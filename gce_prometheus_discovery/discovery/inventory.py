"""Per-cycle memo of project inventories."""

from __future__ import annotations

import logging

from . import InventoryClient
from .deadline import Deadline
from .models import Instance

logger = logging.getLogger(__name__)


class ProjectInventory:
    """Fetches each project at most once. Create a new one for every discovery cycle."""

    def __init__(self, client: InventoryClient, deadline: Deadline):
        self._client = client
        self._deadline = deadline
        self._by_project: dict[str, list[Instance]] = {}

    def get(self, project: str) -> list[Instance]:
        if project not in self._by_project:
            self._by_project[project] = self._client.list_instances(project, self._deadline)
        else:
            logger.debug("Reusing inventory of %s for this cycle", project)
        return self._by_project[project]

    @property
    def projects(self) -> list[str]:
        return list(self._by_project)
