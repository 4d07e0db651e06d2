"""SMTP email transport built on smtplib."""

import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid

import structlog
from notifications.channel.port import EmailTransport
from notifications.config import Settings

logger = structlog.get_logger(__name__)


class SMTPEmailTransport(EmailTransport):
    """Sends multipart (text + HTML) mail through a configured SMTP relay.

    A new connection is opened per message; the dispatcher calls this from
    worker threads and smtplib connections are not shared across threads.
    """

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.secure = settings.smtp_secure
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.smtp_from
        self.timeout = settings.smtp_timeout_seconds

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.ehlo()
        if server.has_extn("starttls"):
            server.starttls(context=ssl.create_default_context())
            server.ehlo()
        return server

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid(domain=self.sender.split("@")[-1])
        msg.set_content(body)
        if html_body:
            msg.add_alternative(html_body, subtype="html")

        try:
            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP send failed", to=to, host=self.host, error=str(e))
            return {"message_id": None, "status": "failed", "error": str(e)}

        return {"message_id": msg["Message-ID"], "status": "sent"}
