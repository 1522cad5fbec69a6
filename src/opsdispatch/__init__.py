"""opsdispatch: scheduled ticket/report runner and alert fan-out."""

__version__ = "0.4.0"
