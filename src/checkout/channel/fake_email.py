"""Fake email adapter, records sent emails for testing."""

from uuid import uuid4

from checkout.channel.email_port import EmailPort


class FakeEmailAdapter(EmailPort):
    """Email adapter that records messages in memory for test assertions.

    ``fail_next(n)`` makes the next ``n`` sends fail before falling back to
    the configured behaviour.
    """

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.attempts = 0
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self._failures_pending = 0

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def fail_next(self, count: int = 1):
        self._failures_pending = count

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        self.attempts += 1
        if self._failures_pending > 0 or not self.should_succeed:
            self._failures_pending = max(self._failures_pending - 1, 0)
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
            }

        message_id = f"email-{uuid4().hex[:12]}"
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
        self.attempts = 0
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
        self._failures_pending = 0
