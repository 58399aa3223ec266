"""
Operator notification events and their message templates.

Every subject names the node so mails from several hosts can be told
apart in one mailbox.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class ShutdownEvent(Enum):
    """Events the operator is notified about."""
    DEFERRED_TASKS = "deferred_tasks"
    DEFERRED_LOAD = "deferred_load"
    GUEST_SHUTDOWN_FAULT = "guest_shutdown_fault"
    GUESTS_STILL_RUNNING = "guests_still_running"
    EXPORT_FAULT = "export_fault"
    MISSING_DEPENDENCY = "missing_dependency"
    SUCCESS = "success"
    DRY_RUN_COMPLETE = "dry_run_complete"
    POWER_OFF_FAULT = "power_off_fault"
    UNEXPECTED_FAULT = "unexpected_fault"


TEMPLATES: Dict[ShutdownEvent, Tuple[str, str]] = {
    ShutdownEvent.DEFERRED_TASKS: (
        "Deferred: critical tasks active on {node}",
        "Shutdown deferred: critical tasks are active on {node}. "
        "Waiting for them to finish.",
    ),
    ShutdownEvent.DEFERRED_LOAD: (
        "Deferred: high load on {node}",
        "Shutdown deferred due to high load on {node} "
        "({load:.2f} > {max_load}). Try again later.",
    ),
    ShutdownEvent.GUEST_SHUTDOWN_FAULT: (
        "FAILED: {kind} shutdown on {node}",
        "{kind} {guest_id} could not be shut down cleanly on {node}.",
    ),
    ShutdownEvent.GUESTS_STILL_RUNNING: (
        "FAILED: Safe shutdown on {node}",
        "Guests still running on {node} after {timeout:.0f}s: {guests}. "
        "Storage pools were not exported and the host stays up.",
    ),
    ShutdownEvent.EXPORT_FAULT: (
        "FAILED: Safe shutdown on {node}",
        "Storage pool export failed on {node}. Pools may still be active!",
    ),
    ShutdownEvent.MISSING_DEPENDENCY: (
        "FAILED: Safe shutdown on {node}",
        "Required command missing on {node}: {command}",
    ),
    ShutdownEvent.SUCCESS: (
        "OK: Safe shutdown completed on {node}",
        "Server {node} was shut down safely at {timestamp}. "
        "Tasks completed and storage pools exported.",
    ),
    ShutdownEvent.DRY_RUN_COMPLETE: (
        "DRY RUN: Safe shutdown would have completed on {node}",
        "Dry run on {node} at {timestamp}: all checks passed. "
        "No guest, pool or power command was executed.",
    ),
    ShutdownEvent.POWER_OFF_FAULT: (
        "FAILED: Power-off failed on {node}",
        "The power-off command failed on {node}. Check the host.",
    ),
    ShutdownEvent.UNEXPECTED_FAULT: (
        "FAILED: Safe shutdown on {node}",
        "Unexpected error on {node} during {stage}: {error}",
    ),
}


@dataclass(frozen=True)
class Message:
    subject: str
    body: str


def render(event: ShutdownEvent, node: str, **fields: Any) -> Message:
    """Fill the templates for an event."""
    subject, body = TEMPLATES[event]
    values = {"node": node, **fields}
    return Message(subject=subject.format(**values), body=body.format(**values))
