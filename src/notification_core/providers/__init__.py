"""Sender registry for channel-based delivery dispatch."""

from typing import assert_never

import httpx

from notification_core.config import NotificationSettings
from notification_core.enums import Channel
from notification_core.providers.base import ChannelSender, DeliveryResult, MessageContent
from notification_core.providers.email import EmailSender
from notification_core.providers.push import PushSender
from notification_core.providers.sms import SmsSender
from notification_core.providers.webhook import WebhookSender

__all__ = [
    "ChannelSender",
    "DeliveryResult",
    "MessageContent",
    "SenderRegistry",
    "create_sender",
    "create_default_registry",
]


class SenderRegistry:
    """Maps channels to sender instances."""

    def __init__(self) -> None:
        self._senders: dict[Channel, ChannelSender] = {}

    def register(self, channel: Channel, sender: ChannelSender) -> None:
        self._senders[channel] = sender

    def get(self, channel: Channel) -> ChannelSender:
        """Return the sender for a channel.

        Raises KeyError if no sender is registered for the channel.
        """
        return self._senders[channel]


def create_sender(
    channel: Channel, settings: NotificationSettings, client: httpx.AsyncClient
) -> ChannelSender:
    match channel:
        case Channel.EMAIL:
            return EmailSender(settings.email, client)
        case Channel.SMS:
            return SmsSender(settings.sms, client)
        case Channel.PUSH:
            return PushSender(settings.push, client)
        case Channel.WEBHOOK:
            return WebhookSender(settings.webhook, client)
        case _:
            assert_never(channel)


def create_default_registry(
    settings: NotificationSettings, client: httpx.AsyncClient
) -> SenderRegistry:
    """Create a registry with a sender for every channel, sharing one HTTP client."""
    registry = SenderRegistry()
    for channel in Channel:
        registry.register(channel, create_sender(channel, settings, client))
    return registry
