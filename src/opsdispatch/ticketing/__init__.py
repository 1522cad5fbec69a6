"""Ticket system clients."""

from opsdispatch.ticketing.glpi import CreatedTicket, GLPIClient

__all__ = ["CreatedTicket", "GLPIClient"]
