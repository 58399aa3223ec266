import logging
from datetime import datetime
from typing import Optional

from safehalt.actions.load import LoadAverageAction
from safehalt.config import Settings

logger = logging.getLogger(__name__)


def in_time_window(now: datetime, start_hour: int) -> bool:
    """Shutdown is allowed from start_hour until midnight."""
    return now.hour >= start_hour


class LoadGate:
    """Single-sample check of the 1-minute load average against MAX_LOAD."""

    def __init__(self, settings: Settings, load: LoadAverageAction):
        self.settings = settings
        self.load = load
        self.last_load: Optional[float] = None

    async def load_ok(self) -> bool:
        self.last_load = await self.load.one_minute()
        logger.info(f"Current load: {self.last_load:.2f} (max {self.settings.MAX_LOAD})")
        return self.last_load <= self.settings.MAX_LOAD
