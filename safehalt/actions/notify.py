"""
Operator notifications by mail.

Two transports: the local `mail` command (e.g. backed by msmtp) and a
plain SMTP relay. A failed notification is logged and never propagates,
so mail trouble cannot abort a shutdown run.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Any, Optional, Tuple

import anyio

from safehalt.events import Message, ShutdownEvent, render
from safehalt.host.runner import CommandRunner

from .base import HostCapability

logger = logging.getLogger(__name__)


class MailTransport(ABC):
    requires: Tuple[str, ...] = ()

    @abstractmethod
    async def send(self, recipient: str, message: Message) -> None:
        """Deliver a message or raise."""


class MailCommandTransport(MailTransport):
    """Pipes the body into `mail -s <subject> <recipient>`."""

    requires = ("mail",)

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    async def send(self, recipient: str, message: Message) -> None:
        await self.runner.run(
            ["mail", "-s", message.subject, recipient],
            input=message.body + "\n",
        )


class SmtpTransport(MailTransport):
    """Sends through an SMTP relay without authentication."""

    def __init__(self, host: str = "localhost", port: int = 25, sender: str = "safehalt@localhost", timeout: float = 30.0):
        self.host = host
        self.port = port
        self.sender = sender
        self.timeout = timeout

    def _send_sync(self, recipient: str, message: Message) -> None:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.set_content(message.body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.send_message(msg)

    async def send(self, recipient: str, message: Message) -> None:
        await anyio.to_thread.run_sync(self._send_sync, recipient, message)


class Notifier(HostCapability):
    """
    Sends event notifications for one node to the operator address.

    Args:
        transport: How mail leaves the host
        recipient: Operator address
        node: Node identifier put in every subject
    """

    def __init__(self, transport: MailTransport, recipient: str, node: str):
        self.transport = transport
        self.recipient = recipient
        self.node = node

    @property
    def requires(self) -> Tuple[str, ...]:
        return tuple(self.transport.requires)

    async def notify(self, event: ShutdownEvent, **fields: Any) -> bool:
        """
        Render and send a notification.

        Returns:
            True if the transport accepted the message
        """
        try:
            message = render(event, self.node, **fields)
            await self.transport.send(self.recipient, message)
        except Exception as e:
            logger.error(f"Failed to send {event.value} notification: {e}")
            return False
        logger.info(f"Notification sent: {message.subject}")
        return True
