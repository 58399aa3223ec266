"""
Process table lookups used to spot backup and replication jobs.
"""

import logging
import os
import re
from typing import Callable, Optional, Tuple

import anyio
import psutil

from .base import HostCapability

logger = logging.getLogger(__name__)


class ProcessAction(HostCapability):
    """
    Looks for running processes by exact name or by pattern.

    Processes that vanish or deny access while being inspected are
    skipped. The calling process itself is never matched.
    """

    @property
    def requires(self) -> Tuple[str, ...]:
        return ()

    async def find_exact(self, name: str) -> bool:
        """Whether a process named exactly `name` is running."""
        match = await anyio.to_thread.run_sync(
            self._first_match, lambda proc_name, _cmdline: proc_name == name
        )
        return match is not None

    async def find_pattern(self, pattern: str) -> Optional[str]:
        """
        Search process names and command lines for a regex.

        Returns:
            The matching command line, or None
        """
        regex = re.compile(pattern)

        def _match(proc_name: str, cmdline: str) -> bool:
            return bool(regex.search(proc_name) or regex.search(cmdline))

        return await anyio.to_thread.run_sync(self._first_match, _match)

    def _first_match(self, predicate: Callable[[str, str], bool]) -> Optional[str]:
        own_pid = os.getpid()
        for proc in psutil.process_iter(["pid", "name", "cmdline"]):
            info = proc.info
            if info["pid"] == own_pid:
                continue
            proc_name = info.get("name") or ""
            cmdline = " ".join(info.get("cmdline") or [])
            if predicate(proc_name, cmdline):
                logger.debug(f"Process {info['pid']} matched: {cmdline or proc_name}")
                return cmdline or proc_name
        return None
