"""Logging email adapter: the message is written to the log instead of sent."""

from uuid import uuid4

import structlog

from checkout.channel.email_port import EmailPort

logger = structlog.get_logger(__name__)


class LoggingEmailAdapter(EmailPort):
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        message_id = f"email-{uuid4().hex[:12]}"
        logger.info("email_sent", message_id=message_id, to=to, subject=subject, body=body)
        return {"message_id": message_id, "status": "sent"}
