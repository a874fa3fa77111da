"""Outbound delivery of introduction emails."""

from __future__ import annotations

import logging
import smtplib
import time
from collections.abc import Sequence
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Protocol
from urllib.parse import unquote, urlparse
from uuid import UUID

from dealflow.config import settings
from dealflow.observability.metrics import metrics
from dealflow.services.pipeline.errors import IntroductionDeliveryError

logger = logging.getLogger(__name__)

DEFAULT_SMTP_TIMEOUT = 15.0


class IntroductionMailer(Protocol):
    def deliver(
        self, *, vote_id: UUID, recipients: Sequence[str], subject: str, body: str
    ) -> None:
        ...


class LoggingIntroductionMailer(IntroductionMailer):
    """Records the introduction instead of sending it; used when SMTP is not configured."""

    def __init__(self) -> None:
        self.outbox: list[dict[str, object]] = []

    def deliver(
        self, *, vote_id: UUID, recipients: Sequence[str], subject: str, body: str
    ) -> None:
        self.outbox.append(
            {"vote_id": vote_id, "recipients": list(recipients), "subject": subject, "body": body}
        )
        logger.info(
            "introduction.email.logged",
            extra={"vote_id": str(vote_id), "recipients": len(recipients), "subject": subject},
        )


@dataclass(frozen=True)
class SMTPDeliveryConfig:
    host: str
    port: int
    username: str | None
    password: str | None
    use_ssl: bool
    disable_tls: bool
    from_address: str

    @classmethod
    def from_url(cls, smtp_url: str, from_address: str, *, disable_tls: bool = False) -> SMTPDeliveryConfig:
        parsed = urlparse(smtp_url)
        if parsed.scheme not in {"smtp", "smtps", "smtp+ssl"}:
            raise ValueError("EMAIL_SMTP_URL must start with smtp:// or smtps://")
        use_ssl = parsed.scheme in {"smtps", "smtp+ssl"}
        return cls(
            host=parsed.hostname or "localhost",
            port=parsed.port or (465 if use_ssl else 587),
            username=unquote(parsed.username) if parsed.username else None,
            password=unquote(parsed.password) if parsed.password else None,
            use_ssl=use_ssl,
            disable_tls=disable_tls,
            from_address=from_address,
        )


class SmtpIntroductionMailer(IntroductionMailer):
    def __init__(self, config: SMTPDeliveryConfig) -> None:
        self._config = config

    def deliver(
        self, *, vote_id: UUID, recipients: Sequence[str], subject: str, body: str
    ) -> None:
        config = self._config
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = config.from_address
        message["To"] = ", ".join(recipients)
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = make_msgid()
        message.set_content(body)

        start = time.perf_counter()
        client = self._create_client()
        try:
            if not config.use_ssl:
                client.ehlo()
                if not config.disable_tls:
                    client.starttls()
                    client.ehlo()
            if config.username:
                client.login(config.username, config.password or "")
            client.send_message(message, to_addrs=list(recipients))
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "introduction.email.error",
                extra={
                    "vote_id": str(vote_id),
                    "host": config.host,
                    "port": config.port,
                    "error": str(exc),
                },
            )
            metrics.increment("introduction.email.errors")
            raise IntroductionDeliveryError(
                f"SMTP delivery failed for {config.host}:{config.port}: {exc}",
                code="502_EMAIL_DELIVERY",
            ) from exc
        finally:
            try:
                client.quit()
            except (smtplib.SMTPException, OSError):  # pragma: no cover - best-effort cleanup
                logger.debug("SMTP quit failed", exc_info=True)

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "introduction.email.sent",
            extra={
                "vote_id": str(vote_id),
                "message_id": message["Message-ID"],
                "recipients": len(recipients),
            },
        )
        metrics.increment("introduction.email.sent", tags={"recipient_count": len(recipients)})
        metrics.timing("introduction.email.duration_ms", duration_ms)

    def _create_client(self) -> smtplib.SMTP:
        if self._config.use_ssl:
            return smtplib.SMTP_SSL(self._config.host, self._config.port, timeout=DEFAULT_SMTP_TIMEOUT)
        return smtplib.SMTP(self._config.host, self._config.port, timeout=DEFAULT_SMTP_TIMEOUT)


def build_mailer() -> IntroductionMailer:
    """Return an SMTP mailer when EMAIL_SMTP_URL and EMAIL_FROM are set."""
    if not settings.smtp_enabled:
        logger.info("introduction.mailer.initialized", extra={"backend": "log"})
        return LoggingIntroductionMailer()
    config = SMTPDeliveryConfig.from_url(
        settings.email_smtp_url or "",
        settings.email_from or "",
        disable_tls=settings.email_disable_tls,
    )
    logger.info("introduction.mailer.initialized", extra={"backend": "smtp", "host": config.host})
    return SmtpIntroductionMailer(config)
