"""
Preflight check that every external command is installed.

A missing command is a deployment defect, so there are no retries.
"""

import logging
import shutil
from typing import Iterable, List

from safehalt.actions.notify import Notifier
from safehalt.events import ShutdownEvent

from .errors import MissingDependencyError

logger = logging.getLogger(__name__)


def missing_commands(commands: Iterable[str]) -> List[str]:
    """Commands that do not resolve on PATH, in the given order."""
    return [command for command in commands if shutil.which(command) is None]


async def check_required_commands(commands: Iterable[str], notifier: Notifier) -> None:
    """
    Verify every command resolves on PATH.

    Raises:
        MissingDependencyError: On the first missing command, after the
            operator has been notified
    """
    for command in commands:
        if shutil.which(command) is None:
            await notifier.notify(ShutdownEvent.MISSING_DEPENDENCY, command=command)
            logger.error(f"Required command missing: {command}")
            raise MissingDependencyError(command)
    logger.debug("All required commands present")
