from oncallbot.clients.base import (
    BaseHTTPClient,
    PermanentHTTPError,
    ReplyDeliveryError,
    RetryableHTTPError,
)
from oncallbot.clients.slack import SlackApiError, SlackClient

__all__ = [
    "BaseHTTPClient",
    "PermanentHTTPError",
    "ReplyDeliveryError",
    "RetryableHTTPError",
    "SlackApiError",
    "SlackClient",
]
