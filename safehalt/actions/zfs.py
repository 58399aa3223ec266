import logging
import re
from typing import Tuple

from .base import BaseAction

logger = logging.getLogger(__name__)

_MAINTENANCE_IN_PROGRESS = re.compile(r"\b(scrub|resilver) in progress\b")


class ZpoolAction(BaseAction):
    """ZFS pool status and export via the zpool CLI."""

    @property
    def requires(self) -> Tuple[str, ...]:
        return ("zpool",)

    async def status(self) -> str:
        result = await self._query(["zpool", "status"])
        return result.stdout

    async def scrub_in_progress(self) -> bool:
        """Whether any pool reports a scrub or resilver in progress."""
        return bool(_MAINTENANCE_IN_PROGRESS.search(await self.status()))

    async def export_all(self) -> None:
        await self._execute(["zpool", "export", "-a"])
