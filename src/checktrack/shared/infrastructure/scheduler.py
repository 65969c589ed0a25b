"""
Cycle Scheduler
===============

Wrapper around APScheduler for the periodic lifecycle cycles
(transition sweep, SLA notifications, escalations, digests).

Each job runs with ``max_instances=1`` so a cycle always completes
before the next run of the same job starts.
"""

from typing import Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from checktrack.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CycleJob = Callable[[], Awaitable[object]]


class CycleScheduler:
    """
    Manages the lifecycle of the scheduler and its interval jobs.

    Jobs registered with a non-positive interval are skipped, which is how
    individual cycles are disabled from configuration.
    """

    def __init__(self) -> None:
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: Dict[str, tuple[CycleJob, int]] = {}
        self._running = False

    def add_cycle(self, name: str, job_func: CycleJob, interval_seconds: int) -> None:
        """Register a cycle; must be called before start()."""
        if interval_seconds <= 0:
            logger.info("Cycle disabled", extra={"cycle": name})
            return
        self._jobs[name] = (job_func, interval_seconds)

    async def start(self) -> None:
        """Start the scheduler with every registered cycle."""
        if self._running:
            logger.warning("Cycle scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        for name, (job_func, interval_seconds) in self._jobs.items():
            self._scheduler.add_job(
                job_func,
                "interval",
                seconds=interval_seconds,
                id=name,
                name=name.replace("_", " ").title(),
                misfire_grace_time=60,
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )

        self._scheduler.start()
        self._running = True

        logger.info(
            "Cycle scheduler started",
            extra={"cycles": sorted(self._jobs)}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=True)

        self._running = False
        logger.info("Cycle scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    @property
    def cycles(self) -> list[str]:
        return sorted(self._jobs)
