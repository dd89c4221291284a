"""Discovery pipeline: inventory -> tag filter -> target mapping, for every rule."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from ..config import DiscoveryRule
from ..exceptions import MappingError
from . import InventoryClient
from .deadline import Deadline
from .inventory import ProjectInventory
from .models import Target
from .tag_filter import TagFilter
from .target_mapper import LABEL_JOB, instance_to_targets

logger = logging.getLogger(__name__)


class Discoverer:
    """Turns the configured rules into the full target set of one cycle."""

    def __init__(self, client: InventoryClient, rules: Sequence[DiscoveryRule]):
        self._client = client
        self._rules = tuple(rules)

    def discover(self, deadline: Deadline) -> list[Target]:
        """Run discovery for all rules.

        Each project is listed once per call. Instances that cannot be mapped are
        logged and left out; FetchError and DiscoveryTimeout propagate.
        """
        inventory = ProjectInventory(self._client, deadline)
        targets: list[Target] = []

        for rule in self._rules:
            instances = inventory.get(rule.project)
            deadline.check(f"discovery for job {rule.job}")

            matching = TagFilter(rule.tags).apply(instances)
            logger.debug(
                "Found %d instances for %s in %s", len(matching), sorted(rule.tags), rule.project,
                extra={"job": rule.job, "project": rule.project},
            )

            for instance in matching:
                try:
                    targets.extend(instance_to_targets(instance, rule))
                except MappingError as exc:
                    logger.warning(
                        "Skipping instance %s for job %s: %s", instance.name, rule.job, exc,
                        extra={"job": rule.job, "project": rule.project, "instance": instance.name},
                    )

        logger.info(
            "Discovered %d targets from %d projects", len(targets), len(inventory.projects),
            extra={"total_targets": len(targets)},
        )
        return targets


def count_by_job(targets: Sequence[Target]) -> dict[str, int]:
    """Number of targets per ``job`` label."""
    return dict(Counter(t.labels.get(LABEL_JOB, "") for t in targets))
