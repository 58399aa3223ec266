from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from safehalt.actions.load import LoadAverageAction
from safehalt.actions.notify import Notifier
from safehalt.actions.power import PowerOffAction
from safehalt.actions.processes import ProcessAction
from safehalt.actions.proxmox import ProxmoxGuestAction
from safehalt.actions.zfs import ZpoolAction
from safehalt.config import Settings
from safehalt.shutdown.lock import RunLock
from safehalt.shutdown.orchestrator import SafeShutdownOrchestrator


def make_settings(**overrides) -> Settings:
    values = {
        "NODE_NAME": "pve1",
        "ADMIN_EMAIL": "ops@example.org",
        "CRITICAL_TASKS": ["vzdump"],
        "LOCK_FILE": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sent_events(notifier):
    """Events passed to notifier.notify, in order."""
    return [c.args[0] for c in notifier.notify.await_args_list]


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def guests():
    mock = MagicMock(spec=ProxmoxGuestAction)
    mock.requires = ("qm", "pct")
    mock.list_guests = AsyncMock(return_value=[])
    mock.is_running = AsyncMock(return_value=False)
    mock.shutdown = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def pools():
    mock = MagicMock(spec=ZpoolAction)
    mock.requires = ("zpool",)
    mock.scrub_in_progress = AsyncMock(return_value=False)
    mock.export_all = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def processes():
    mock = MagicMock(spec=ProcessAction)
    mock.requires = ()
    mock.find_exact = AsyncMock(return_value=False)
    mock.find_pattern = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def load():
    mock = MagicMock(spec=LoadAverageAction)
    mock.requires = ()
    mock.one_minute = AsyncMock(return_value=0.5)
    return mock


@pytest.fixture
def power():
    mock = MagicMock(spec=PowerOffAction)
    mock.requires = ("shutdown",)
    mock.power_off = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def notifier():
    mock = MagicMock(spec=Notifier)
    mock.requires = ("mail",)
    mock.notify = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def all_commands_present():
    with patch("safehalt.shutdown.preflight.shutil.which", side_effect=lambda cmd: f"/usr/bin/{cmd}") as mock:
        yield mock


@pytest.fixture
def build_orchestrator(guests, pools, processes, load, power, notifier):
    """Factory for an orchestrator wired to mocks, at a given hour."""
    def _build(settings=None, hour=23, lock=None):
        return SafeShutdownOrchestrator(
            settings or make_settings(),
            guests=guests,
            pools=pools,
            processes=processes,
            load=load,
            power=power,
            notifier=notifier,
            clock=lambda: datetime(2026, 10, 16, hour, 0),
            lock=lock or RunLock(None),
        )
    return _build
