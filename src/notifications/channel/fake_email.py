"""Fake email transport — records outgoing mail for test assertions."""

from uuid import uuid4

from notifications.channel.port import EmailTransport


class FakeEmailAdapter(EmailTransport):
    """Email transport that keeps messages in memory instead of sending them."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "SMTP delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "SMTP delivery failed"):
        """Make subsequent sends succeed or fail."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"<{uuid4().hex}@fake.plantops.local>"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent_emails.clear()
        self.should_succeed = True
        self.failure_reason = "SMTP delivery failed"
