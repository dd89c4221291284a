"""Conversion of matching instances into Prometheus scrape targets."""

from __future__ import annotations

from ..config import DiscoveryRule
from ..exceptions import NoInterfaceError
from .models import Instance, Target

LABEL_JOB = "job"
LABEL_PROJECT = "gce_instance_project"
LABEL_ZONE = "gce_instance_zone"
LABEL_TYPE = "gce_instance_type"
LABEL_NAME = "gce_instance_name"
LABEL_TAG_PREFIX = "gce_instance_tag_"


def parse_resource(uri: str) -> str:
    """Last path segment of a GCE resource URI ("…/zones/us-central1-b" -> "us-central1-b")."""
    return uri.rstrip("/").rsplit("/", 1)[-1]


def format_tag(tag: str) -> str:
    """Make a network tag usable in a label name: lower-case, hyphens to underscores."""
    return tag.lower().replace("-", "_")


def instance_to_targets(instance: Instance, rule: DiscoveryRule) -> list[Target]:
    """Build the scrape targets for one instance matched by ``rule``.

    One target per instance, with one endpoint per rule port in rule order.
    Each instance tag becomes its own ``gce_instance_tag_<tag>="true"`` label.
    """
    ip = instance.primary_ip
    if ip is None:
        raise NoInterfaceError(
            f"Instance {instance.name} has no network interface with an IP",
            instance=instance.name,
        )

    labels = {
        LABEL_JOB: rule.job,
        LABEL_PROJECT: rule.project,
        LABEL_ZONE: parse_resource(instance.zone),
        LABEL_TYPE: parse_resource(instance.machine_type),
        LABEL_NAME: instance.name,
    }
    for tag in sorted(instance.tags):
        labels[LABEL_TAG_PREFIX + format_tag(tag)] = "true"

    endpoints = tuple(f"{ip}:{port}" for port in rule.ports)
    return [Target(endpoints=endpoints, labels=labels)]
