"""Channel adapter interface for outbound messaging transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class OutgoingMessage:
    """Normalized outbound message to any channel."""

    text: str
    recipient: str  # phone number, chat id, ...


@dataclass
class DeliveryReceipt:
    """What the transport answered when a message was accepted."""

    channel: str
    status_code: int
    response: Any = field(default=None, repr=False)
    strategy: str = ""  # which request variant succeeded
    message_id: str | None = None


class ChannelAdapter(ABC):
    """Base class for all message channel adapters.

    Translates the normalized OutgoingMessage into a channel's native API call.
    ``send`` raises a DispatchError subclass when the message was not accepted.
    """

    channel_name: str = ""

    @abstractmethod
    async def send(self, message: OutgoingMessage) -> DeliveryReceipt:
        """Send a message through this channel."""
        ...
