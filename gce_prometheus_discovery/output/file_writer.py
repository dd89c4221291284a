"""Atomic writer (and reader) for Prometheus file_sd target files."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

import yaml

from ..discovery.change_detector import canonicalize
from ..discovery.models import Target
from ..exceptions import ReadError, WriteError

logger = logging.getLogger(__name__)


def dump_targets(targets: Sequence[Target]) -> str:
    """Serialize targets as a file_sd YAML document, in canonical order."""
    return yaml.safe_dump(
        [t.to_dict() for t in canonicalize(targets)],
        default_flow_style=False,
        sort_keys=True,
    )


def read_targets(path: str | Path) -> list[Target]:
    """Parse a file_sd YAML file back into targets."""
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ReadError(f"Failed to read target file {path}: {exc}") from exc
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(entry, dict) for entry in raw):
        raise ReadError(f"{path} does not contain a list of targets")
    return [Target.from_dict(entry) for entry in raw]


class TargetFileWriter:
    """Replaces the target file atomically: temp file in the same directory, fsync, rename.

    Readers see either the old or the new file, never a partial one. On failure
    the old file is left untouched.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def write(self, targets: Sequence[Target]) -> None:
        try:
            content = dump_targets(targets)
        except yaml.YAMLError as exc:
            raise WriteError(f"Failed to serialize targets: {exc}") from exc

        directory = self.path.parent
        tmp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                self._discard(tmp_name)
            raise WriteError(f"Failed to write target file {self.path}: {exc}") from exc

        logger.info(
            "Wrote %d targets to %s", len(targets), self.path,
            extra={"path": str(self.path), "total_targets": len(targets)},
        )

    @staticmethod
    def _discard(tmp_name: str) -> None:
        """Best-effort removal of a leftover temp file."""
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        except OSError:
            logger.debug("Could not remove temp file %s", tmp_name, exc_info=True)
