"""Target set diffing: decides whether a newly discovered set needs writing."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .models import Target

logger = logging.getLogger(__name__)


def _sort_key(target: Target) -> tuple:
    endpoints = target.endpoints
    return (endpoints[0] if endpoints else "", endpoints, sorted(target.labels.items()))


def canonicalize(targets: Sequence[Target]) -> list[Target]:
    """Sort each target's endpoints, then the targets themselves.

    Targets are ordered by first endpoint, then by the whole endpoint list, then
    by their labels, so the result does not depend on discovery order.
    """
    normalized = [Target(endpoints=tuple(sorted(t.endpoints)), labels=t.labels) for t in targets]
    return sorted(normalized, key=_sort_key)


def targets_different(old: Sequence[Target], new: Sequence[Target]) -> bool:
    """True unless both sets hold the same targets, in any order."""
    if len(old) != len(new):
        return True
    for a, b in zip(canonicalize(old), canonicalize(new)):
        if a.endpoints != b.endpoints or a.labels != b.labels:
            return True
    return False


class ChangeDetector:
    """Remembers the last written target set of one daemon."""

    def __init__(self) -> None:
        self._last_written: list[Target] | None = None

    @property
    def last_written(self) -> list[Target] | None:
        return self._last_written

    def reset(self) -> None:
        """Forget the last written set (e.g. on SIGHUP)."""
        logger.info("Change detector state reset, next cycle will rewrite the target file")
        self._last_written = None

    def has_changed(self, targets: Sequence[Target]) -> bool:
        """Compare ``targets`` with the last written set. Always True before the first write."""
        last_written = self._last_written
        if last_written is None:
            logger.info("No target set written yet")
            return True

        changed = targets_different(last_written, targets)
        if changed:
            logger.info(
                "Target set changed: %d -> %d targets", len(last_written), len(targets),
                extra={"total_targets": len(targets)},
            )
        return changed

    def record(self, targets: Sequence[Target]) -> None:
        """Store ``targets`` as the last written set."""
        self._last_written = list(targets)
