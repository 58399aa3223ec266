"""
Proxmox guest control through the qm (VMs) and pct (containers) CLIs.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .base import BaseAction

logger = logging.getLogger(__name__)


class GuestKind(Enum):
    VM = "qm"
    CONTAINER = "pct"

    @property
    def command(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return "VM" if self is GuestKind.VM else "Container"


@dataclass(frozen=True)
class GuestHandle:
    """A guest found by enumeration."""
    id: str
    kind: GuestKind

    def __str__(self) -> str:
        return f"{self.kind.label} {self.id}"


class ProxmoxGuestAction(BaseAction):

    @property
    def requires(self) -> Tuple[str, ...]:
        return (GuestKind.VM.command, GuestKind.CONTAINER.command)

    async def list_guests(self, kind: GuestKind) -> List[GuestHandle]:
        """List guest ids from `qm list` / `pct list`, skipping the header row."""
        result = await self._query([kind.command, "list"])
        guests = []
        for line in result.stdout.splitlines()[1:]:
            fields = line.split()
            if fields:
                guests.append(GuestHandle(id=fields[0], kind=kind))
        return guests

    async def is_running(self, guest: GuestHandle) -> bool:
        """`qm status <id>` prints e.g. 'status: running'."""
        result = await self._query([guest.kind.command, "status", guest.id])
        return "running" in result.stdout.split()

    async def shutdown(self, guest: GuestHandle, timeout: int) -> None:
        args = [guest.kind.command, "shutdown", guest.id, "--timeout", str(timeout)]
        # pct shutdown has no lock bypass
        if guest.kind is GuestKind.VM:
            args += ["--skiplock", "1"]
        await self._execute(args)
