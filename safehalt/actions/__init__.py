"""
Host capabilities used by the shutdown sequence.

Each action wraps one external surface so the orchestrator can be driven
by substitutes in tests.
"""

from safehalt.actions.base import BaseAction, HostCapability
from safehalt.actions.load import LoadAverageAction
from safehalt.actions.notify import MailCommandTransport, MailTransport, Notifier, SmtpTransport
from safehalt.actions.power import PowerOffAction
from safehalt.actions.processes import ProcessAction
from safehalt.actions.proxmox import GuestHandle, GuestKind, ProxmoxGuestAction
from safehalt.actions.zfs import ZpoolAction

__all__ = [
    "BaseAction",
    "HostCapability",
    "GuestHandle",
    "GuestKind",
    "LoadAverageAction",
    "MailCommandTransport",
    "MailTransport",
    "Notifier",
    "PowerOffAction",
    "ProcessAction",
    "ProxmoxGuestAction",
    "SmtpTransport",
    "ZpoolAction",
]
