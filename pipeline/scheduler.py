import logging
from typing import List, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from pipeline.runner import PipelineRunner

logger = logging.getLogger(__name__)


class PipelineScheduler:
    """Runs the pipeline for every configured source on a fixed interval"""

    def __init__(
        self,
        runner: PipelineRunner,
        sources: Optional[List[str]] = None,
        interval_minutes: Optional[int] = None
    ):
        self.runner = runner
        self.sources = list(settings.SCHEDULED_SOURCES if sources is None else sources)
        self.interval_minutes = interval_minutes or settings.SCHEDULE_INTERVAL_MINUTES
        self.scheduler = AsyncIOScheduler()

    async def run_pipeline_job(self):
        """Job to run the pipeline once per configured source"""
        logger.info(f"Scheduler: Starting pipeline job for {len(self.sources)} sources")
        for source_endpoint in self.sources:
            outcome = await self.runner.run(source_endpoint)
            logger.info(
                f"Scheduler: {source_endpoint} -> {outcome.state.value} "
                f"(loaded={outcome.loaded_count}, failed={outcome.failed_count})"
            )

    def start(self) -> bool:
        """Start the scheduler; returns False when there is nothing to schedule"""
        if not self.sources:
            logger.info("No scheduled sources configured, scheduler not started")
            return False

        self.scheduler.add_job(
            self.run_pipeline_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="pipeline_job",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        logger.info(f"Pipeline scheduler started (every {self.interval_minutes} minutes)")
        return True

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Pipeline scheduler stopped")
