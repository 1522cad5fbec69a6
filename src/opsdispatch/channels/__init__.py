"""Outbound messaging channels."""

from opsdispatch.channels.base import ChannelAdapter, DeliveryReceipt, OutgoingMessage
from opsdispatch.channels.whatsapp import EvolutionWhatsAppAdapter

__all__ = ["ChannelAdapter", "DeliveryReceipt", "EvolutionWhatsAppAdapter", "OutgoingMessage"]
