import logging

from safehalt.actions.notify import Notifier
from safehalt.actions.zfs import ZpoolAction
from safehalt.events import ShutdownEvent
from safehalt.host.runner import CommandError

from .errors import StorageExportError

logger = logging.getLogger(__name__)


class StorageExporter:
    """Exports all ZFS pools, the last checkpoint before power-off."""

    def __init__(self, pools: ZpoolAction, notifier: Notifier):
        self.pools = pools
        self.notifier = notifier

    async def export_all_pools(self) -> None:
        """
        Raises:
            StorageExportError: If `zpool export -a` fails; the operator
                has been notified
        """
        logger.info("Exporting ZFS pools (zpool export -a)...")
        try:
            await self.pools.export_all()
        except CommandError as e:
            await self.notifier.notify(ShutdownEvent.EXPORT_FAULT)
            logger.error(f"ZFS export failed, pools may still be active: {e}")
            raise StorageExportError(str(e)) from e
        logger.info("ZFS pools exported.")
