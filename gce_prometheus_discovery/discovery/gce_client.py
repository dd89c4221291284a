"""Google Compute Engine client for listing the instances of a project across all zones."""

from __future__ import annotations

import logging
from typing import Any

import requests
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import compute_v1

from ..config import GCEConfig
from ..exceptions import DiscoveryTimeout, FetchError
from .deadline import Deadline
from .models import Instance

logger = logging.getLogger(__name__)

STATUS_RUNNING = "RUNNING"

# Errors that abort the whole listing of a project. requests.RequestException
# covers the REST transport; OSError covers an unreadable credentials file.
_FETCH_ERRORS = (
    google_exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
    requests.RequestException,
    OSError,
)


class GCEClient:
    """Lists instances with the aggregated Instances API, one page request at a time."""

    def __init__(self, gce_config: GCEConfig):
        self._config = gce_config
        self._instances_client: compute_v1.InstancesClient | None = None

    def list_instances(self, project: str, deadline: Deadline) -> list[Instance]:
        """Return every instance in ``project``.

        Pages are requested one at a time, each with whatever is left of the
        cycle budget as its timeout. All pages are walked before anything is
        returned; an error on any page raises FetchError and the pages already
        read are dropped.
        """
        what = f"listing instances in {project}"

        instances: list[Instance] = []
        pages = 0
        page_token = ""
        try:
            while True:
                deadline.check(what)
                page = self._fetch_page(project, page_token, deadline.remaining())
                pages += 1
                for zone, scoped in page.items.items():
                    for raw in getattr(scoped, "instances", None) or ():
                        inst = self._parse_instance(raw, project, zone)
                        if inst is not None:
                            instances.append(inst)
                page_token = getattr(page, "next_page_token", "") or ""
                if not page_token:
                    break
        except google_exceptions.DeadlineExceeded as exc:
            raise DiscoveryTimeout(f"Timed out {what}: {exc}", project=project) from exc
        except _FETCH_ERRORS as exc:
            raise FetchError(f"Failed {what}: {exc}", project=project) from exc

        logger.info(
            "Listed %d instances in %s (%d pages)", len(instances), project, pages,
            extra={"project": project, "total_instances": len(instances)},
        )
        return instances

    def _fetch_page(self, project: str, page_token: str, timeout: float) -> Any:
        """Fetch one aggregated list page. Only the first page of the SDK pager is read."""
        request = compute_v1.AggregatedListInstancesRequest(
            project=project,
            max_results=self._config.page_size,
            page_token=page_token,
        )
        pager = self._client().aggregated_list(request=request, timeout=timeout)
        return next(iter(pager.pages))

    def _client(self) -> compute_v1.InstancesClient:
        """Build the SDK client on first use so credential problems fail a cycle, not startup."""
        if self._instances_client is None:
            if self._config.credentials_file:
                self._instances_client = compute_v1.InstancesClient.from_service_account_file(
                    self._config.credentials_file,
                )
            else:
                self._instances_client = compute_v1.InstancesClient()
        return self._instances_client

    def _parse_instance(self, raw: Any, project: str, scope: str) -> Instance | None:
        """Convert an SDK instance into an Instance. Returns None for entries to skip."""
        if raw is None:
            logger.warning("Skipping null instance in %s (%s)", project, scope)
            return None

        name = getattr(raw, "name", "")
        zone = getattr(raw, "zone", "")
        if not name or not zone:
            logger.warning("Skipping malformed instance in %s (%s): missing name or zone", project, scope)
            return None

        status = getattr(raw, "status", "") or ""
        if self._config.running_only and status != STATUS_RUNNING:
            logger.debug("Skipping instance %s in %s: status %s", name, project, status or "unknown")
            return None

        tags = getattr(raw, "tags", None)
        tag_items = getattr(tags, "items", None) or ()

        network_ips = tuple(
            (getattr(nic, "network_ip", "") or None) if nic is not None else None
            for nic in getattr(raw, "network_interfaces", None) or ()
        )

        return Instance(
            name=name,
            zone=zone,
            machine_type=getattr(raw, "machine_type", "") or "",
            tags=frozenset(tag_items),
            network_ips=network_ips,
            status=status,
        )
