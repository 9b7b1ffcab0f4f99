"""
Authcraft Mail - Recovery instruction delivery.

``MailNotifier`` implements the recovery ``Notifier`` contract: it renders
the reset-instructions message with Jinja2 and hands it to a
``MailTransport``. Transports:

- ConsoleTransport: logs messages instead of sending them (development)
- OutboxTransport: captures messages in memory (testing)

Any transport failure surfaces as ``DeliveryError``; nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Protocol

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from .config import MailConfig, get_config
from .recovery.faults import DeliveryError

logger = logging.getLogger("authcraft.mail")

TEMPLATE_DIR = Path(__file__).parent / "templates"


@dataclass
class MailMessage:
    """A rendered message ready for a transport."""
    to: list[str]
    subject: str
    body: str
    html_body: str = ""
    from_email: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"<MailMessage to={self.to} subject={self.subject!r}>"


class MailTransport(Protocol):
    """Protocol for message delivery."""

    name: str

    async def send(self, message: MailMessage) -> None:
        ...


class ConsoleTransport:
    """Transport that logs messages instead of sending them."""

    name = "console"

    async def send(self, message: MailMessage) -> None:
        logger.info(
            f"Console mail to {', '.join(message.to)}: {message.subject}",
            extra={"to": message.to, "subject": message.subject},
        )
        # Development only: the body carries live reset tokens.
        logger.debug(f"Console mail body:\n{message.body}")


class OutboxTransport:
    """
    Transport capturing messages in memory.

    Set ``fail_with`` to an exception to simulate a provider failure.
    """

    name = "outbox"

    def __init__(self):
        self.outbox: list[MailMessage] = []
        self.fail_with: Exception | None = None

    async def send(self, message: MailMessage) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.outbox.append(message)

    def clear(self) -> None:
        self.outbox.clear()


def create_environment(template_dir: Path | None = None) -> Environment:
    """Jinja2 environment for the message templates."""
    return Environment(
        loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


class MailNotifier:
    """
    Notifier sending reset-password instructions by email.

    Args:
        transport: Delivery backend
        config: Mail settings (default: ``get_config().mail``)
        reset_url: Builds the reset link from a token (default: format
            ``config.reset_url`` with ``token``)
        env: Jinja2 environment (default: bundled templates)
    """

    TEXT_TEMPLATE = "mail/reset_password_instructions.txt"
    HTML_TEMPLATE = "mail/reset_password_instructions.html"

    def __init__(
        self,
        transport: MailTransport,
        config: MailConfig | None = None,
        reset_url: Callable[[str], str] | None = None,
        env: Environment | None = None,
    ):
        self.transport = transport
        self.config = config or get_config().mail
        self.reset_url = reset_url or (lambda token: self.config.reset_url.format(token=token))
        self.env = env or create_environment()

    def build_message(self, entity: Any, token: str) -> MailMessage:
        context = {
            "resource": entity,
            "email": entity.email,
            "token": token,
            "reset_url": self.reset_url(token),
        }
        return MailMessage(
            to=[entity.email],
            subject=self.config.reset_subject,
            body=self.env.get_template(self.TEXT_TEMPLATE).render(context),
            html_body=self.env.get_template(self.HTML_TEMPLATE).render(context),
            from_email=self.config.default_from,
        )

    async def notify(self, entity: Any, token: str) -> None:
        """
        Send reset instructions for ``token`` to ``entity.email``.

        Raises:
            DeliveryError: no address, or the transport failed
        """
        if not entity.email:
            raise DeliveryError("entity has no email address", transport=self.transport.name)

        message = self.build_message(entity, token)
        try:
            await self.transport.send(message)
        except DeliveryError:
            raise
        except Exception as exc:
            logger.warning(f"Mail transport {self.transport.name} failed: {exc}")
            raise DeliveryError(str(exc), transport=self.transport.name) from exc

        logger.info(f"Sent reset instructions via {self.transport.name} for {type(entity).__qualname__} {entity.id}")
