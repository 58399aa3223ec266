"""
Tests for critical task detection and the wait-for-tasks loop.
"""

from unittest.mock import AsyncMock, call, patch

import psutil
import pytest

from conftest import make_settings
from safehalt.host.runner import CommandError, CommandTimeoutError
from safehalt.shutdown.tasks import TaskDetector


@pytest.fixture
def detector(processes, pools):
    return TaskDetector(make_settings(CRITICAL_TASKS=["vzdump", "zfs", "pvesr"]), processes, pools)


class TestTasksActive:

    @pytest.mark.asyncio
    async def test_nothing_running(self, detector, processes, pools):
        assert await detector.tasks_active() is False
        assert processes.find_exact.await_args_list == [call("vzdump"), call("zfs"), call("pvesr")]
        pools.scrub_in_progress.assert_awaited_once()
        processes.find_pattern.assert_awaited_once_with("vzdump|pve-zsync")

    @pytest.mark.asyncio
    async def test_exact_match_short_circuits(self, detector, processes, pools):
        processes.find_exact.side_effect = lambda name: name == "zfs"
        pools.scrub_in_progress.return_value = True
        processes.find_pattern.return_value = "vzdump --all"

        assert await detector.tasks_active() is True
        assert processes.find_exact.await_args_list == [call("vzdump"), call("zfs")]
        pools.scrub_in_progress.assert_not_awaited()
        processes.find_pattern.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scrub_in_progress(self, detector, processes, pools):
        pools.scrub_in_progress.return_value = True

        assert await detector.tasks_active() is True
        processes.find_pattern.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pattern_match(self, detector, processes):
        processes.find_pattern.return_value = "/usr/bin/perl /usr/bin/vzdump 101 --mode snapshot"

        assert await detector.tasks_active() is True

    @pytest.mark.asyncio
    async def test_failed_sub_checks_count_as_no_match(self, detector, processes, pools):
        processes.find_exact.side_effect = psutil.AccessDenied()
        pools.scrub_in_progress.side_effect = CommandError(["zpool", "status"], "exited with code 1")
        processes.find_pattern.side_effect = CommandTimeoutError(["ps"], "timed out after 1s")

        assert await detector.tasks_active() is False
        assert processes.find_exact.await_count == 3

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, detector, processes):
        processes.find_exact.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await detector.tasks_active()


class TestWaitForTasks:

    @pytest.mark.asyncio
    @patch('asyncio.sleep', new_callable=AsyncMock)
    async def test_polls_until_done(self, mock_sleep, processes, pools):
        detector = TaskDetector(make_settings(POLL_INTERVAL="5m"), processes, pools)
        processes.find_exact.side_effect = [True, True, True, False]

        polls = await detector.wait_for_tasks()

        assert polls == 3
        assert mock_sleep.await_args_list == [call(300.0)] * 3

    @pytest.mark.asyncio
    @patch('asyncio.sleep', new_callable=AsyncMock)
    async def test_returns_immediately_when_idle(self, mock_sleep, detector):
        assert await detector.wait_for_tasks() == 0
        mock_sleep.assert_not_awaited()
