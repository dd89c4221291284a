"""Network tag filtering for discovered instances."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import Instance

logger = logging.getLogger(__name__)


def matches(instance: Instance, required_tags: Iterable[str]) -> bool:
    """True if the instance carries every required tag. Extra tags are allowed."""
    return frozenset(required_tags) <= instance.tags


class TagFilter:
    """Keeps instances whose tags are a superset of the required tags (AND)."""

    def __init__(self, required_tags: Iterable[str]):
        self._required = frozenset(required_tags)

    def apply(self, instances: list[Instance]) -> list[Instance]:
        before = len(instances)
        result = [inst for inst in instances if matches(inst, self._required)]
        filtered = before - len(result)
        if filtered:
            logger.debug(
                "Tag filter %s removed %d of %d instances",
                sorted(self._required), filtered, before,
                extra={"filtered": filtered},
            )
        return result
