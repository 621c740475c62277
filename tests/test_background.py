import asyncio
from unittest.mock import patch

from aibot.services.background import drain_background_tasks, pending_background_tasks, spawn_background


class TestSpawnBackground:
    def test_runs_without_awaiting(self):
        done = []

        async def work():
            done.append(True)

        async def scenario():
            spawn_background(work(), name="work")
            await drain_background_tasks(1.0)

        asyncio.run(scenario())
        assert done == [True]
        assert pending_background_tasks() == 0

    def test_failure_is_logged_not_raised(self):
        async def boom():
            raise RuntimeError("webhook exploded")

        async def scenario():
            task = spawn_background(boom(), name="boom")
            await asyncio.gather(task, return_exceptions=True)
            await asyncio.sleep(0)

        with patch("aibot.services.background.logger") as mock_logger:
            asyncio.run(scenario())

        mock_logger.error.assert_called_once()
        assert "webhook exploded" in mock_logger.error.call_args[0][0]
        assert pending_background_tasks() == 0


class TestDrainBackgroundTasks:
    def test_cancels_tasks_past_grace_period(self):
        async def slow():
            await asyncio.sleep(10)

        async def scenario():
            task = spawn_background(slow(), name="slow")
            await drain_background_tasks(0.05)
            return task

        task = asyncio.run(scenario())
        assert task.cancelled()
        assert pending_background_tasks() == 0

    def test_nothing_pending(self):
        asyncio.run(drain_background_tasks(0.01))
