from typing import Tuple

import psutil

from .base import HostCapability


class LoadAverageAction(HostCapability):
    """Reads the system load average."""

    @property
    def requires(self) -> Tuple[str, ...]:
        return ()

    async def one_minute(self) -> float:
        return psutil.getloadavg()[0]
