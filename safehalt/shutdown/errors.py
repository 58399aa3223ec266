"""Errors raised by the shutdown sequence."""


class SafeHaltError(Exception):
    """Base class for shutdown sequence errors."""


class StageFatalError(SafeHaltError):
    """A stage failed and aborted the run. The operator was already notified."""


class MissingDependencyError(StageFatalError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Required command missing: {command}")


class GuestsStillRunningError(StageFatalError):
    def __init__(self, guests):
        self.guests = list(guests)
        super().__init__(
            "Guests still running after shutdown: "
            + ", ".join(str(g) for g in self.guests)
        )


class StorageExportError(StageFatalError):
    """Storage pools could not be exported."""


class PowerOffError(StageFatalError):
    """The power-off command was rejected."""


class AlreadyRunningError(SafeHaltError):
    """Another safehalt instance holds the run lock."""
