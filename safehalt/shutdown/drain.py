"""
Graceful shutdown of all running guests on the node.

VMs go first, then containers, one at a time. A guest that fails to shut
down is reported and skipped; it never stops the others from being
attempted.

After all shutdowns are issued the drainer waits for the guests to
settle before storage is touched. In "poll" mode it re-checks every
guest until it has stopped, and raises GuestsStillRunningError when any
is still up at GUEST_STOP_TIMEOUT. In "fixed" mode it sleeps
GUEST_SETTLE_DELAY once and proceeds, accepting that a slow guest may
still be shutting down when pools are exported.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from safehalt.actions.notify import Notifier
from safehalt.actions.proxmox import GuestHandle, GuestKind, ProxmoxGuestAction
from safehalt.config import Settings
from safehalt.events import ShutdownEvent
from safehalt.host.runner import CommandError

from .errors import GuestsStillRunningError

logger = logging.getLogger(__name__)


@dataclass
class DrainReport:
    """What happened to each guest during a drain."""

    skipped: List[GuestHandle] = field(default_factory=list)
    shut_down: List[GuestHandle] = field(default_factory=list)
    failed: List[GuestHandle] = field(default_factory=list)
    still_running: List[GuestHandle] = field(default_factory=list)

    @property
    def attempted(self) -> List[GuestHandle]:
        return self.shut_down + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skipped": [str(g) for g in self.skipped],
            "shut_down": [str(g) for g in self.shut_down],
            "failed": [str(g) for g in self.failed],
            "still_running": [str(g) for g in self.still_running],
        }


class GuestDrainer:

    def __init__(self, settings: Settings, guests: ProxmoxGuestAction, notifier: Notifier):
        self.settings = settings
        self.guests = guests
        self.notifier = notifier

    async def drain_all_guests(self) -> DrainReport:
        """
        Shut down every running VM and container, then let them settle.

        Raises:
            GuestsStillRunningError: In poll mode, if guests outlive
                GUEST_STOP_TIMEOUT
        """
        logger.info("Shutting down running VMs and containers...")
        report = DrainReport()

        for kind in (GuestKind.VM, GuestKind.CONTAINER):
            for guest in await self.guests.list_guests(kind):
                await self._drain_guest(guest, report)

        logger.info(
            f"Guest shutdown issued: {len(report.shut_down)} ok, "
            f"{len(report.failed)} failed, {len(report.skipped)} not running"
        )
        await self._settle(report)
        return report

    async def _drain_guest(self, guest: GuestHandle, report: DrainReport) -> None:
        if not await self._is_running(guest):
            report.skipped.append(guest)
            return

        logger.info(f"Shutting down {guest}...")
        try:
            await self.guests.shutdown(guest, timeout=self.settings.GUEST_SHUTDOWN_TIMEOUT)
        except CommandError as e:
            logger.error(f"{guest} could not be shut down cleanly: {e}")
            report.failed.append(guest)
            await self.notifier.notify(
                ShutdownEvent.GUEST_SHUTDOWN_FAULT,
                kind=guest.kind.label,
                guest_id=guest.id,
            )
        else:
            report.shut_down.append(guest)

    async def _is_running(self, guest: GuestHandle) -> bool:
        try:
            return await self.guests.is_running(guest)
        except CommandError as e:
            logger.warning(f"Status of {guest} unavailable, treating as not running: {e}")
            return False

    async def _settle(self, report: DrainReport) -> None:
        if self.settings.DRY_RUN:
            logger.info("DRY RUN: Skipping guest settle phase")
            return

        if self.settings.GUEST_SETTLE_MODE == "fixed":
            logger.info(f"Waiting {self.settings.GUEST_SETTLE_DELAY:.0f}s for guests to stop...")
            await asyncio.sleep(self.settings.GUEST_SETTLE_DELAY)
            return

        pending = list(report.attempted)
        if not pending:
            return

        # Bounded by poll count rather than wall clock
        max_polls = math.ceil(self.settings.GUEST_STOP_TIMEOUT / self.settings.GUEST_STOP_POLL)
        polls = 0
        while True:
            pending = [guest for guest in pending if await self._still_running(guest)]
            if not pending or polls >= max_polls:
                break
            logger.info(f"Waiting for {len(pending)} guest(s) to stop: {', '.join(map(str, pending))}")
            await asyncio.sleep(self.settings.GUEST_STOP_POLL)
            polls += 1

        if pending:
            report.still_running = pending
            logger.error(f"Guests still running after {self.settings.GUEST_STOP_TIMEOUT:.0f}s: {', '.join(map(str, pending))}")
            await self.notifier.notify(
                ShutdownEvent.GUESTS_STILL_RUNNING,
                timeout=self.settings.GUEST_STOP_TIMEOUT,
                guests=", ".join(str(g) for g in pending),
            )
            raise GuestsStillRunningError(pending)

        logger.info("All guests have stopped.")

    async def _still_running(self, guest: GuestHandle) -> bool:
        # Unknown status counts as running here
        try:
            return await self.guests.is_running(guest)
        except CommandError as e:
            logger.warning(f"Status of {guest} unavailable, assuming still running: {e}")
            return True
