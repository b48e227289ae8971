"""
Auto-Resolve Scheduler.

Reports left in Pending Confirmation longer than AUTO_RESOLVE_AFTER_DAYS are
resolved on the reporter's behalf, through the same workflow transition as a
manual confirmation (points included).

DESIGN PRINCIPLES:
- Each report is resolved in its own atomic transition
- One failing report never stops the sweep
- Losing a race to a manual confirm/reject is expected, not an error
- Runs shortly after startup, then on a fixed interval
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, Optional
import asyncio
import logging

from pydantic import BaseModel, Field

from app.core.errors import NotFoundError, StateConflictError, WorkflowError
from app.models.user import SYSTEM_ACTOR
from app.services.report_service import ReportWorkflowService

logger = logging.getLogger(__name__)


class AutoResolveSummary(BaseModel):
    """Result of one sweep."""
    total: int = 0
    resolved: int = 0
    skipped: int = Field(default=0, description="Candidates that changed state before we got to them")
    failed: int = 0
    failures: Dict[str, str] = Field(default_factory=dict, description="report_id -> reason")


def run_auto_resolve_sweep(service: ReportWorkflowService, now: Optional[datetime] = None) -> AutoResolveSummary:
    """
    Resolve every report that has waited for confirmation past the deadline.

    Raises:
        PersistenceError: the candidate query itself failed
    """
    now = now or service.clock()
    cutoff = now - service.engine.auto_resolve_after

    logger.info("🤖 Running auto-resolve job...")
    candidates = service.store.find_stale_pending_confirmations(cutoff)
    summary = AutoResolveSummary(total=len(candidates))

    if not candidates:
        logger.info("✅ No reports to auto-resolve")
        return summary

    logger.info(f"📊 Found {len(candidates)} reports to auto-resolve")

    for report in candidates:
        try:
            service.auto_resolve(report.id, SYSTEM_ACTOR)
            summary.resolved += 1
            logger.info(f"  ✓ Auto-resolved report {report.id}")
        except (StateConflictError, NotFoundError) as e:
            # A manual confirm/reject committed first
            summary.skipped += 1
            logger.info(f"  - Skipped report {report.id}: {e.message}")
        except WorkflowError as e:
            summary.failed += 1
            summary.failures[report.id] = e.message
            logger.error(f"  ✗ Failed to auto-resolve report {report.id}: {e.message}")
        except Exception as e:
            summary.failed += 1
            summary.failures[report.id] = str(e)
            logger.error(f"  ✗ Failed to auto-resolve report {report.id}: {e}", exc_info=True)

    logger.info(f"🎉 Auto-resolved {summary.resolved} of {summary.total} reports")
    return summary


class AutoResolveScheduler:
    """
    Background asyncio loop that runs the sweep in a worker thread.
    """

    def __init__(
        self,
        service_factory: Callable[[], ReportWorkflowService],
        interval: timedelta = timedelta(hours=6),
        initial_delay: timedelta = timedelta(seconds=60)
    ):
        self.service_factory = service_factory
        self.interval = interval
        self.initial_delay = initial_delay
        self._task: Optional[asyncio.Task] = None
        self.last_summary: Optional[AutoResolveSummary] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run_forever())
        logger.info(
            f"Auto-resolve scheduler started (first run in {self.initial_delay.total_seconds():.0f}s, "
            f"then every {self.interval.total_seconds() / 3600:.1f}h)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Auto-resolve scheduler stopped")

    async def run_once(self) -> Optional[AutoResolveSummary]:
        """Run one sweep off the event loop. Failures are logged, not raised."""
        loop = asyncio.get_running_loop()
        try:
            service = self.service_factory()
            self.last_summary = await loop.run_in_executor(None, run_auto_resolve_sweep, service)
        except Exception as e:
            logger.error(f"❌ Auto-resolve job failed: {e}", exc_info=True)
            return None
        return self.last_summary

    async def _run_forever(self) -> None:
        await asyncio.sleep(self.initial_delay.total_seconds())
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval.total_seconds())
