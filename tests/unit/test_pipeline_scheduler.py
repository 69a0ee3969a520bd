"""
Unit tests for the pipeline scheduler
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from pipeline.scheduler import PipelineScheduler


def mock_runner() -> MagicMock:
    runner = MagicMock()
    runner.run = AsyncMock(return_value=MagicMock(loaded_count=1, failed_count=0))
    return runner


class TestPipelineScheduler:
    """Test scheduler functionality"""

    @pytest.mark.asyncio
    async def test_job_runs_every_source(self):
        """Test the job runs the pipeline once per configured source"""
        runner = mock_runner()
        scheduler = PipelineScheduler(runner, sources=["https://a/contacts", "https://b/contacts"])

        await scheduler.run_pipeline_job()

        assert [c.args[0] for c in runner.run.await_args_list] == ["https://a/contacts", "https://b/contacts"]

    def test_no_sources_not_started(self):
        """Test the scheduler stays idle without sources"""
        scheduler = PipelineScheduler(mock_runner(), sources=[])

        assert scheduler.start() is False
        assert not scheduler.scheduler.running

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Test an interval job is registered and removed on shutdown"""
        scheduler = PipelineScheduler(mock_runner(), sources=["https://a/contacts"], interval_minutes=5)

        assert scheduler.start() is True
        job = scheduler.scheduler.get_job("pipeline_job")
        assert job is not None
        assert job.trigger.interval.total_seconds() == 300

        scheduler.stop()
        assert not scheduler.scheduler.running
