"""
Slack bot package for RallyBot.
"""

from .client import SlackNotifier
from .handlers import WebhookHandler, WebhookResponse

__all__ = [
    "SlackNotifier",
    "WebhookHandler",
    "WebhookResponse",
]
