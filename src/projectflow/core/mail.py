"""Transactional email delivery."""

from __future__ import annotations

import logging
import smtplib
import uuid
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import make_msgid
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.concurrency import run_in_threadpool

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


class MailDeliveryError(RuntimeError):
    """Raised when the configured transport refuses or fails a send."""


@dataclass(slots=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str | None = None


class Mailer(Protocol):
    async def send(self, message: OutgoingEmail) -> str:
        """Deliver ``message`` and return the provider's message id."""


def render_template(name: str, **context: Any) -> str:
    return _templates.get_template(name).render(**context)


@dataclass(slots=True)
class InMemoryMailer:
    """Collects messages instead of sending them (development and tests)."""

    sender: str
    outbox: list[OutgoingEmail] = field(default_factory=list)
    fail_with: str | None = None

    async def send(self, message: OutgoingEmail) -> str:
        if self.fail_with is not None:
            raise MailDeliveryError(self.fail_with)
        self.outbox.append(message)
        return f"memory-{uuid.uuid4().hex}"

    def clear(self) -> None:
        self.outbox.clear()
        self.fail_with = None


class SmtpMailer:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _deliver(self, message: OutgoingEmail) -> str:
        settings = self._settings
        email = EmailMessage()
        message_id = make_msgid(domain=settings.smtp_host)
        email["Subject"] = message.subject
        email["From"] = settings.mail_from
        email["To"] = message.to
        email["Message-ID"] = message_id
        email.set_content(message.text or message.subject)
        email.add_alternative(message.html, subtype="html")
        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as smtp:
                if settings.smtp_use_tls:
                    smtp.starttls()
                if settings.smtp_username:
                    smtp.login(settings.smtp_username, settings.smtp_password or "")
                smtp.send_message(email)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(str(exc)) from exc
        return message_id

    async def send(self, message: OutgoingEmail) -> str:
        return await run_in_threadpool(self._deliver, message)


class ResendMailer:
    """Send through the Resend HTTP API."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client

    async def send(self, message: OutgoingEmail) -> str:
        settings = self._settings
        if not settings.resend_api_key:
            raise MailDeliveryError("Resend API key is not configured.")
        payload = {
            "from": settings.mail_from,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        headers = {"Authorization": f"Bearer {settings.resend_api_key}"}
        try:
            if self._client is not None:
                response = await self._client.post(settings.resend_api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=settings.smtp_timeout_seconds) as client:
                    response = await client.post(settings.resend_api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise MailDeliveryError(str(exc)) from exc
        body = response.json()
        return str(body.get("id", ""))


_mailer_override: Mailer | None = None


def set_mailer(mailer: Mailer | None) -> None:
    """Inject a mailer instance (tests use :class:`InMemoryMailer`)."""

    global _mailer_override
    _mailer_override = mailer


@lru_cache()
def _build_mailer(transport: str) -> Mailer:
    settings = get_settings()
    if transport == "smtp":
        return SmtpMailer(settings)
    if transport == "resend":
        return ResendMailer(settings)
    return InMemoryMailer(sender=settings.mail_from)


def get_mailer() -> Mailer:
    if _mailer_override is not None:
        return _mailer_override
    return _build_mailer(get_settings().mail_transport)


__all__ = [
    "InMemoryMailer",
    "MailDeliveryError",
    "Mailer",
    "OutgoingEmail",
    "ResendMailer",
    "SmtpMailer",
    "get_mailer",
    "render_template",
    "set_mailer",
]
