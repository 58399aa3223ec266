"""
Detection of critical background work that must block a shutdown.

Checks run cheapest first and stop at the first hit: exact process
names, then pool scrub/resilver state, then a pattern scan of command
lines for backup and replication tools.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import psutil

from safehalt.actions.processes import ProcessAction
from safehalt.actions.zfs import ZpoolAction
from safehalt.config import Settings
from safehalt.host.runner import CommandError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskDetector:
    """Answers whether critical tasks are active on the node."""

    def __init__(self, settings: Settings, processes: ProcessAction, pools: ZpoolAction):
        self.settings = settings
        self.processes = processes
        self.pools = pools

    async def _check(self, label: str, check: Callable[[], Awaitable[T]], default: T) -> T:
        # A failed lookup counts as "not detected"; the wait loop re-polls.
        try:
            return await check()
        except (CommandError, psutil.Error, OSError) as e:
            logger.debug(f"{label} check failed, treating as no match: {e}")
            return default

    async def tasks_active(self) -> bool:
        for name in self.settings.CRITICAL_TASKS:
            if await self._check(f"Process '{name}'", lambda: self.processes.find_exact(name), False):
                logger.info(f"Critical task active: {name}")
                return True

        if await self._check("Pool scrub", self.pools.scrub_in_progress, False):
            logger.info("ZFS scrub or resilver still in progress.")
            return True

        match = await self._check(
            "Backup pattern",
            lambda: self.processes.find_pattern(self.settings.BACKUP_PATTERN),
            None,
        )
        if match:
            logger.info(f"Backup/replication active (pattern match): {match}")
            return True

        return False

    async def wait_for_tasks(self) -> int:
        """
        Block until no critical task is active. There is no upper bound.

        Returns:
            Number of poll intervals slept
        """
        logger.info("Critical tasks are still running. Waiting until they finish...")
        polls = 0
        while await self.tasks_active():
            await asyncio.sleep(self.settings.POLL_INTERVAL)
            polls += 1
        logger.info("All critical tasks have finished.")
        return polls
