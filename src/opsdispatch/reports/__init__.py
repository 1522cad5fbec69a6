"""Scheduled report message rendering."""

from opsdispatch.reports.render import render_report_message

__all__ = ["render_report_message"]
