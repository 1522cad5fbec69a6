"""Configuration: constants, sub-models, and the Settings object."""

from opsdispatch.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
