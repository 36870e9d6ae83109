"""Email channel registry.

Provides singleton access to the email adapter. ``EMAIL_ADAPTER`` picks it:
``log`` (default) writes messages to the log, ``fake`` keeps them in memory
for tests.
"""

import os

from checkout.channel.email_port import EmailPort

_channel_instance: EmailPort | None = None


def get_channel() -> EmailPort:
    """Return the configured email adapter."""
    global _channel_instance
    if _channel_instance is None:
        kind = os.environ.get("EMAIL_ADAPTER", "log").lower()
        if kind == "log":
            from checkout.channel.log_email import LoggingEmailAdapter

            _channel_instance = LoggingEmailAdapter()
        elif kind == "fake":
            from checkout.channel.fake_email import FakeEmailAdapter

            _channel_instance = FakeEmailAdapter()
        else:
            raise ValueError(f"Unknown email adapter: {kind}")

    return _channel_instance


def set_channel(channel: EmailPort) -> None:
    global _channel_instance
    _channel_instance = channel


def reset_channels():
    """Reset the channel singleton (useful for testing)."""
    global _channel_instance
    _channel_instance = None
