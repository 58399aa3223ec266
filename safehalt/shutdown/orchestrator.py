"""
Safe shutdown orchestration for a Proxmox node.

Runs the fixed decision sequence: preflight, time window, critical
tasks, load, guest drain, pool export, power-off. Each stage handles
its own expected failures; anything else is caught once at the top of
run(), reported to the operator and turned into exit code 1.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from safehalt.actions.load import LoadAverageAction
from safehalt.actions.notify import MailCommandTransport, Notifier, SmtpTransport
from safehalt.actions.power import PowerOffAction
from safehalt.actions.processes import ProcessAction
from safehalt.actions.proxmox import ProxmoxGuestAction
from safehalt.actions.zfs import ZpoolAction
from safehalt.config import Settings
from safehalt.events import ShutdownEvent
from safehalt.host.runner import CommandError, CommandRunner

from .drain import DrainReport, GuestDrainer
from .errors import AlreadyRunningError, PowerOffError, StageFatalError
from .gate import LoadGate, in_time_window
from .lock import RunLock
from .preflight import check_required_commands
from .storage import StorageExporter
from .tasks import TaskDetector

logger = logging.getLogger(__name__)


class RunOutcome(Enum):
    """Terminal state of a run."""
    DEFERRED_TIME_WINDOW = "deferred_time_window"
    DEFERRED_TASKS_THEN_COMPLETED = "deferred_tasks_then_completed"
    DEFERRED_HIGH_LOAD = "deferred_high_load"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        if self in (RunOutcome.DEFERRED_TIME_WINDOW, RunOutcome.COMPLETED, RunOutcome.DEFERRED_TASKS_THEN_COMPLETED):
            return 0
        return 1


@dataclass
class RunResult:
    """Result of one orchestrator run."""

    outcome: RunOutcome
    started_at: datetime
    reason: Optional[str] = None
    stage: Optional[str] = None
    wait_polls: int = 0
    load: Optional[float] = None
    drain: Optional[DrainReport] = None
    finished_at: Optional[datetime] = None

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "exit_code": self.exit_code,
            "reason": self.reason,
            "stage": self.stage,
            "wait_polls": self.wait_polls,
            "load": self.load,
            "drain": self.drain.to_dict() if self.drain else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


def build_notifier(settings: Settings, runner: Optional[CommandRunner] = None) -> Notifier:
    if settings.NOTIFY_TRANSPORT == "smtp":
        transport = SmtpTransport(settings.SMTP_HOST, settings.SMTP_PORT, settings.mail_from)
    else:
        transport = MailCommandTransport(runner)
    return Notifier(transport, recipient=settings.ADMIN_EMAIL, node=settings.NODE_NAME)


class SafeShutdownOrchestrator:
    """
    Gates and sequences the shutdown of one node.

    Every collaborator can be passed in; defaults talk to the real host.
    The orchestrator never runs stages concurrently.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        runner: Optional[CommandRunner] = None,
        guests: Optional[ProxmoxGuestAction] = None,
        pools: Optional[ZpoolAction] = None,
        processes: Optional[ProcessAction] = None,
        load: Optional[LoadAverageAction] = None,
        power: Optional[PowerOffAction] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = datetime.now,
        lock: Optional[RunLock] = None,
    ):
        self.settings = settings
        runner = runner or CommandRunner(timeout=settings.command_timeout)
        dry_run = settings.DRY_RUN

        self.guests = guests or ProxmoxGuestAction(runner, dry_run=dry_run)
        self.pools = pools or ZpoolAction(runner, dry_run=dry_run)
        self.processes = processes or ProcessAction()
        self.load = load or LoadAverageAction()
        self.power = power or PowerOffAction(settings.POWER_OFF_COMMAND, runner=runner, dry_run=dry_run)
        self.notifier = notifier or build_notifier(settings, runner)
        self.clock = clock
        self.lock = lock or RunLock(settings.LOCK_FILE)

        self.detector = TaskDetector(settings, self.processes, self.pools)
        self.gate = LoadGate(settings, self.load)
        self.drainer = GuestDrainer(settings, self.guests, self.notifier)
        self.exporter = StorageExporter(self.pools, self.notifier)

        self._stage = "startup"

    @property
    def required_commands(self) -> List[str]:
        """External commands needed by all actions, without duplicates."""
        commands: List[str] = []
        for action in (self.guests, self.pools, self.processes, self.load, self.power, self.notifier):
            for command in action.requires:
                if command not in commands:
                    commands.append(command)
        return commands

    async def run(self) -> RunResult:
        """
        Execute one shutdown attempt.

        Returns:
            Run result; its exit_code is the process exit status
        """
        result = RunResult(outcome=RunOutcome.FAILED, started_at=self.clock())
        logger.info(f"=== Safe shutdown started on {self.settings.NODE_NAME} ===")
        if self.settings.DRY_RUN:
            logger.info("DRY RUN: guests, pools and power will not be touched")

        try:
            await self._run(result)
        except StageFatalError as e:
            result.outcome = RunOutcome.FAILED
            result.reason = str(e)
        except AlreadyRunningError as e:
            logger.warning(str(e))
            result.outcome = RunOutcome.FAILED
            result.reason = str(e)
        except Exception as e:
            logger.exception(f"Unexpected error during {self._stage}")
            detail = f"'{e.command_line}' failed: {e}" if isinstance(e, CommandError) else f"{type(e).__name__}: {e}"
            await self.notifier.notify(ShutdownEvent.UNEXPECTED_FAULT, stage=self._stage, error=detail)
            result.outcome = RunOutcome.FAILED
            result.reason = detail

        result.stage = self._stage
        result.finished_at = self.clock()
        logger.info(f"Safe shutdown finished: {result.outcome.value} (exit {result.exit_code})")
        return result

    async def _run(self, result: RunResult) -> None:
        self._stage = "preflight"
        await check_required_commands(self.required_commands, self.notifier)

        self._stage = "time window"
        start_hour = self.settings.START_HOUR
        if not in_time_window(self.clock(), start_hour):
            logger.info(f"It is not {start_hour}:00 yet. No action.")
            result.outcome = RunOutcome.DEFERRED_TIME_WINDOW
            return
        logger.info(f"Time window OK (>= {start_hour}:00). Checking tasks and load...")

        with self.lock:
            await self._run_locked(result)

    async def _run_locked(self, result: RunResult) -> None:
        self._stage = "critical task check"
        waited = False
        if await self.detector.tasks_active():
            await self.notifier.notify(ShutdownEvent.DEFERRED_TASKS)
            self._stage = "waiting for critical tasks"
            result.wait_polls = await self.detector.wait_for_tasks()
            waited = True

        self._stage = "load check"
        load_ok = await self.gate.load_ok()
        result.load = self.gate.last_load
        if not load_ok:
            await self.notifier.notify(
                ShutdownEvent.DEFERRED_LOAD,
                load=self.gate.last_load,
                max_load=self.settings.MAX_LOAD,
            )
            logger.info("Shutdown deferred due to high load.")
            result.outcome = RunOutcome.DEFERRED_HIGH_LOAD
            return

        self._stage = "guest shutdown"
        result.drain = await self.drainer.drain_all_guests()

        self._stage = "storage export"
        await self.exporter.export_all_pools()

        self._stage = "power-off"
        await self._power_off()
        result.outcome = RunOutcome.DEFERRED_TASKS_THEN_COMPLETED if waited else RunOutcome.COMPLETED

    async def _power_off(self) -> None:
        logger.info("Powering off host...")
        try:
            await self.power.power_off()
        except CommandError as e:
            await self.notifier.notify(ShutdownEvent.POWER_OFF_FAULT)
            logger.error(f"Power-off command failed: {e}")
            raise PowerOffError(str(e)) from e
        event = ShutdownEvent.DRY_RUN_COMPLETE if self.settings.DRY_RUN else ShutdownEvent.SUCCESS
        # The host may be gone before this mail leaves
        await self.notifier.notify(
            event,
            timestamp=self.clock().strftime("%Y-%m-%d %H:%M:%S"),
        )
