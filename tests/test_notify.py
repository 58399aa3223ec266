"""
Tests for operator notifications and their transports.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from safehalt.actions.notify import MailCommandTransport, MailTransport, Notifier, SmtpTransport
from safehalt.events import Message, ShutdownEvent
from safehalt.host.runner import CommandError, CommandRunner


@pytest.fixture
def transport():
    mock = MagicMock(spec=MailTransport)
    mock.requires = ("mail",)
    mock.send = AsyncMock(return_value=None)
    return mock


class TestNotifier:

    @pytest.mark.asyncio
    async def test_renders_and_sends(self, transport):
        notifier = Notifier(transport, recipient="ops@example.org", node="pve1")

        assert await notifier.notify(ShutdownEvent.GUEST_SHUTDOWN_FAULT, kind="VM", guest_id="100") is True

        recipient, message = transport.send.await_args.args
        assert recipient == "ops@example.org"
        assert message.subject == "FAILED: VM shutdown on pve1"
        assert message.body == "VM 100 could not be shut down cleanly on pve1."

    @pytest.mark.asyncio
    async def test_transport_failure_never_raises(self, transport):
        transport.send.side_effect = CommandError(["mail"], "could not be started: No such file or directory")
        notifier = Notifier(transport, recipient="ops@example.org", node="pve1")

        assert await notifier.notify(ShutdownEvent.EXPORT_FAULT) is False

    @pytest.mark.asyncio
    async def test_missing_template_field_never_raises(self, transport):
        notifier = Notifier(transport, recipient="ops@example.org", node="pve1")

        assert await notifier.notify(ShutdownEvent.MISSING_DEPENDENCY) is False
        transport.send.assert_not_awaited()

    def test_requires_follows_transport(self, transport):
        assert Notifier(transport, recipient="ops@example.org", node="pve1").requires == ("mail",)
        assert Notifier(SmtpTransport(), recipient="ops@example.org", node="pve1").requires == ()

    def test_no_command_runner_of_its_own(self, transport):
        notifier = Notifier(transport, recipient="ops@example.org", node="pve1")

        assert not hasattr(notifier, "runner")
        assert not hasattr(notifier, "dry_run")


class TestMailCommandTransport:

    @pytest.mark.asyncio
    async def test_pipes_body_into_mail(self):
        runner = MagicMock(spec=CommandRunner)
        runner.run = AsyncMock()

        await MailCommandTransport(runner).send("ops@example.org", Message("OK: done on pve1", "All good."))

        runner.run.assert_awaited_once_with(
            ["mail", "-s", "OK: done on pve1", "ops@example.org"],
            input="All good.\n",
        )


class TestSmtpTransport:

    @pytest.mark.asyncio
    async def test_sends_message(self):
        with patch("safehalt.actions.notify.smtplib.SMTP") as smtp_class:
            smtp = smtp_class.return_value.__enter__.return_value
            transport = SmtpTransport("relay.example.org", 587, sender="safehalt@pve1")

            await transport.send("ops@example.org", Message("OK: done on pve1", "All good."))

        smtp_class.assert_called_once_with("relay.example.org", 587, timeout=30.0)
        sent = smtp.send_message.call_args.args[0]
        assert sent["Subject"] == "OK: done on pve1"
        assert sent["From"] == "safehalt@pve1"
        assert sent["To"] == "ops@example.org"
        assert sent.get_content().strip() == "All good."
