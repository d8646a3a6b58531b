"""Periodic scheduling of scraping cycles."""

import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

from scrape_news.config import Config
from scrape_news.models import CycleResult
from scrape_news.publish_event import EventPublisher
from scrape_news.run_cycle import run_cycle
from scrape_news.store import ArticleStore

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class Scheduler:
    """Runs a cycle right away, then one per interval until stopped.

    Cycles never overlap: ticks that fall while a cycle is still running are
    skipped, and the next cycle starts on the next tick of the original
    schedule. ``stop_event`` is the cancellation token handed to every
    cycle and worker.

    State goes Idle -> Running -> Stopped (or Idle -> Stopped); a stopped
    scheduler cannot be restarted.
    """

    def __init__(
        self,
        store: ArticleStore,
        publisher: EventPublisher,
        config: Config,
        sources: Optional[list[str]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.publisher = publisher
        self.config = config
        self.sources = list(sources) if sources is not None else list(config.sources)
        self.stop_event = threading.Event()
        self.cycles_run = 0
        self._clock = clock
        self._state = SchedulerState.IDLE
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def start(self) -> None:
        """Start the scheduling loop in a background thread."""
        with self._lock:
            if self._state is not SchedulerState.IDLE:
                raise RuntimeError(f"Cannot start scheduler in state {self._state.value}")
            self._state = SchedulerState.RUNNING
            self._thread = threading.Thread(target=self._loop, name="scrape-scheduler", daemon=True)
            self._thread.start()

        logger.info(
            "News scraper started: %d sources every %.0fs",
            len(self.sources),
            self.config.scrape_interval_seconds,
        )

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Signal cancellation and wait a bounded time for the loop to exit.

        Returns True if the loop thread has finished.
        """
        with self._lock:
            already_stopped = self._state is SchedulerState.STOPPED
            self._state = SchedulerState.STOPPED
            self.stop_event.set()
            thread = self._thread

        if not already_stopped:
            logger.info("Stopping news scraper")
        if thread is None:
            return True

        if timeout is None:
            timeout = self.config.shutdown_timeout_seconds
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Scraping cycle still running after %.0fs, giving up on it", timeout)
            return False
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the loop thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout)

    def run_once(self) -> CycleResult:
        """Run a single cycle in the calling thread."""
        if self._state is SchedulerState.STOPPED:
            raise RuntimeError("Cannot run a cycle on a stopped scheduler")
        return self._run_cycle()

    def _loop(self) -> None:
        interval = self.config.scrape_interval_seconds
        next_tick = self._clock()

        while not self.stop_event.is_set():
            try:
                self._run_cycle()
            except Exception:
                logger.exception("Scraping cycle failed")

            next_tick += interval
            now = self._clock()
            if now >= next_tick:
                missed = int((now - next_tick) // interval) + 1
                logger.warning("Scraping cycle overran the %.0fs interval, skipping %d tick(s)", interval, missed)
                next_tick += missed * interval

            if self.stop_event.wait(max(0.0, next_tick - self._clock())):
                break

        logger.info("News scraper stopped after %d cycles", self.cycles_run)

    def _run_cycle(self) -> CycleResult:
        result = run_cycle(self.sources, self.store, self.publisher, self.config, self.stop_event)
        self.cycles_run += 1
        return result
