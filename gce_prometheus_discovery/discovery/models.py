"""Data models for discovered GCE instances and Prometheus scrape targets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Instance:
    """A single GCE instance as returned by the inventory listing."""

    name: str
    zone: str  # full resource URI, e.g. ".../zones/us-central1-b"
    machine_type: str  # full resource URI, e.g. ".../machineTypes/g1-small"
    tags: frozenset[str] = frozenset()
    network_ips: tuple[str | None, ...] = ()  # one entry per interface, None if unusable
    status: str = ""

    @property
    def primary_ip(self) -> str | None:
        """IP of the first usable network interface."""
        for ip in self.network_ips:
            if ip:
                return ip
        return None


@dataclass(frozen=True)
class Target:
    """One entry of a Prometheus file_sd target file."""

    endpoints: tuple[str, ...]
    labels: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"targets": list(self.endpoints), "labels": dict(self.labels)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Target:
        return cls(
            endpoints=tuple(str(e) for e in data.get("targets") or ()),
            labels={str(k): str(v) for k, v in (data.get("labels") or {}).items()},
        )
