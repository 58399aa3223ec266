from safehalt.host.runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    CommandTimeoutError,
)

__all__ = ["CommandError", "CommandResult", "CommandRunner", "CommandTimeoutError"]
