import logging
import shlex
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from safehalt.host.runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class HostCapability(ABC):
    """Something the shutdown sequence uses from the host."""

    @property
    @abstractmethod
    def requires(self) -> Tuple[str, ...]:
        """External commands this capability needs on PATH."""


class BaseAction(HostCapability):
    """
    A capability driven through external commands: guests, pools, power.

    Mutating commands go through _execute so dry-run mode can log them
    instead of running them. Read-only queries always run.
    """

    def __init__(self, runner: Optional[CommandRunner] = None, *, dry_run: bool = False):
        self.runner = runner or CommandRunner()
        self.dry_run = dry_run

    async def _query(self, args: Sequence[str], **kwargs) -> CommandResult:
        return await self.runner.run(args, **kwargs)

    async def _execute(self, args: Sequence[str], **kwargs) -> CommandResult:
        if self.dry_run:
            logger.info(f"DRY RUN: Would execute '{shlex.join(args)}'")
            return CommandResult(
                command=list(args),
                exit_code=0,
                stdout="Dry run - command not executed",
                stderr="",
                execution_time=0.0,
            )
        return await self.runner.run(args, **kwargs)
