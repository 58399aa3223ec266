"""
Local command execution for host-level operations.

Runs external commands asynchronously with an outer timeout and returns
structured results, so every guest, pool, power and mail call shares the
same error and timeout handling.
"""

import asyncio
import logging
import shlex
import time
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a local command execution."""

    command: Sequence[str]
    exit_code: int
    stdout: str
    stderr: str
    execution_time: float

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stderr:
            return f"{self.stdout}\n{self.stderr}".strip()
        return self.stdout.strip()


class CommandError(Exception):
    """An external command could not be run or exited non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        message: str,
        result: Optional[CommandResult] = None,
    ):
        self.command = list(command)
        self.result = result
        super().__init__(f"'{shlex.join(self.command)}' {message}")

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


class CommandTimeoutError(CommandError):
    """An external command exceeded its outer timeout and was killed."""


class CommandRunner:
    """
    Executes commands on the local host.

    Args:
        timeout: Default outer timeout in seconds, None for no limit
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    async def run(
        self,
        args: Sequence[str],
        *,
        input: Optional[str] = None,
        check: bool = True,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Run a command and collect its output.

        Args:
            args: Program and arguments
            input: Text fed to the command's stdin
            check: Raise CommandError on a non-zero exit code
            timeout: Per-call timeout overriding the runner default

        Returns:
            Command result

        Raises:
            CommandError: If the command cannot be started, or exits
                non-zero while check is set
            CommandTimeoutError: If the command outlives its timeout
        """
        limit = timeout if timeout is not None else self.timeout
        start = time.monotonic()
        logger.debug(f"Executing: {shlex.join(args)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(args, f"could not be started: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(input.encode() if input is not None else None),
                timeout=limit,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise CommandTimeoutError(args, f"timed out after {limit}s")
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        result = CommandResult(
            command=list(args),
            exit_code=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            execution_time=time.monotonic() - start,
        )

        if check and not result.success:
            raise CommandError(
                args,
                f"exited with code {result.exit_code}: {result.output}",
                result=result,
            )
        return result
