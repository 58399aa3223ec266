"""
Shutdown orchestration for safehalt.

Gates a node power-off on the time window, critical tasks and load,
then drains guests, exports storage pools and powers the host off.
"""

from safehalt.shutdown.orchestrator import RunOutcome, RunResult, SafeShutdownOrchestrator

__all__ = ["RunOutcome", "RunResult", "SafeShutdownOrchestrator"]
