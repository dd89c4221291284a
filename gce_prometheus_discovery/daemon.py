"""Main trigger loop: timer ticks and operator signals feed one queue of discovery cycles."""

from __future__ import annotations

import enum
import logging
import queue
import random
import signal
import time
from types import FrameType
from typing import Callable

from .config import AppConfig
from .discovery import InventoryClient
from .discovery.change_detector import ChangeDetector
from .discovery.deadline import Deadline
from .discovery.discoverer import Discoverer, count_by_job
from .discovery.gce_client import GCEClient
from .exceptions import DiscoveryError
from .metrics import DiscoveryMetrics
from .output.file_writer import TargetFileWriter

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    WRITING = "writing"
    SKIPPING = "skipping"
    STOPPED = "stopped"


class Daemon:
    """Discovery daemon: wait for trigger -> discover -> diff -> write or skip.

    Triggers are queued as booleans: ``False`` for a timer tick, ``True`` for a
    forced cycle (SIGUSR1). ``None`` on the queue stops the loop. Cycles run one
    at a time on the thread that called :meth:`run`.
    """

    def __init__(
        self,
        config: AppConfig,
        client: InventoryClient | None = None,
        metrics: DiscoveryMetrics | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._config = config
        self._client = client if client is not None else GCEClient(config.gce)
        self._discoverer = Discoverer(self._client, config.rules)
        self._change_detector = ChangeDetector()
        self._writer = TargetFileWriter(config.output.path)
        self.metrics = metrics if metrics is not None else DiscoveryMetrics()
        self._clock = clock
        self._events: queue.SimpleQueue[bool | None] = queue.SimpleQueue()
        self._shutdown = False
        self._reset_requested = False
        self.state = LoopState.IDLE

    @property
    def change_detector(self) -> ChangeDetector:
        return self._change_detector

    def trigger(self, forced: bool = False) -> None:
        """Queue a cycle. Safe to call from a signal handler or another thread."""
        self._events.put(forced)

    def stop(self) -> None:
        """Ask the loop to exit once the current cycle (if any) is done."""
        self._shutdown = True
        self._events.put(None)

    def run_once(self, forced: bool = False) -> bool:
        """Execute a single discovery cycle."""
        return self.run_cycle(forced)

    def run(self, install_signal_handlers: bool = True) -> None:
        """Run the trigger loop until stopped. The first cycle starts immediately."""
        if install_signal_handlers:
            self._install_signal_handlers()
        logger.info("Daemon started, discovering every %ss", self._config.polling.interval_seconds)

        next_tick = self._clock()
        while not self._shutdown:
            forced = self._wait_for_trigger(next_tick)
            if forced is None:
                break

            cycle_start = self._clock()
            self.run_cycle(forced)
            next_tick = cycle_start + self._interval()
            logger.debug("Next timer cycle in %.1fs", max(0.0, next_tick - self._clock()))

        self.state = LoopState.STOPPED
        logger.info("Daemon stopped")

    def run_cycle(self, forced: bool = False) -> bool:
        """Run one cycle under the configured timeout. Returns False if it failed."""
        start = self._clock()
        deadline = Deadline(self._config.polling.timeout_seconds, clock=self._clock)

        try:
            self._cycle(forced, deadline)
            success = True
        except DiscoveryError as exc:
            logger.error("Sync loop failed: %s", exc, extra={"forced": forced})
            success = False
        except Exception:
            logger.exception("Sync loop failed unexpectedly", extra={"forced": forced})
            success = False
        finally:
            self.state = LoopState.IDLE

        elapsed = self._clock() - start
        self.metrics.record_cycle(success, elapsed)
        logger.info(
            "Cycle %s", "complete" if success else "failed",
            extra={"elapsed_seconds": round(elapsed, 2), "forced": forced},
        )
        return success

    def _cycle(self, forced: bool, deadline: Deadline) -> None:
        """One full discovery-to-write cycle."""
        if self._reset_requested:
            self._reset_requested = False
            self._change_detector.reset()

        self.state = LoopState.DISCOVERING
        targets = self._discoverer.discover(deadline)
        deadline.check("discovery")

        self.metrics.record_targets(self._config.jobs, count_by_job(targets))

        if forced:
            logger.info("Forcing write", extra={"forced": True})
        elif not self._change_detector.has_changed(targets):
            self.state = LoopState.SKIPPING
            logger.info("No changes detected, skipping write")
            return

        self.state = LoopState.WRITING
        self._writer.write(targets)
        self._change_detector.record(targets)
        self.metrics.record_write()

    def _wait_for_trigger(self, next_tick: float) -> bool | None:
        """Block until a queued trigger arrives or the timer is due.

        Returns the queued value (True/False, or None on stop), or False when the
        timer fires first. Waits in short slices so shutdown is noticed promptly.
        """
        while not self._shutdown:
            remaining = next_tick - self._clock()
            try:
                return self._events.get(timeout=max(0.0, min(remaining, 1.0)))
            except queue.Empty:
                if remaining <= 0:
                    return False
        return None

    def _interval(self) -> float:
        """Timer period with jitter applied."""
        polling = self._config.polling
        return polling.interval_seconds + random.uniform(0, polling.jitter_seconds)

    def _install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGHUP, self._handle_reset)
        signal.signal(signal.SIGUSR1, self._handle_force)

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down", sig_name)
        self.stop()

    def _handle_reset(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received SIGHUP, change detector state will be reset before the next cycle")
        self._reset_requested = True

    def _handle_force(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received SIGUSR1, queueing forced cycle")
        self.trigger(forced=True)
