"""Message rendering for scheduled WhatsApp reports.

Template bodies use ``{{name}}`` placeholders. Known variables:

- ``{{date}}`` / ``{{time}}`` / ``{{datetime}}``: pt-BR formatted, in the
  scheduler timezone
- ``{{report_name}}``: the scheduled report's name
- ``{{custom_text}}``: ``settings.custom_text``
- any extra key stored in the report's settings

Unknown placeholders are removed and runs of blank lines collapsed.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from opsdispatch.store.models import MessageTemplate, ScheduledReport

_PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")
_BLANK_RUNS = re.compile(r"\n\s*\n\s*\n")


def format_date(moment: datetime) -> str:
    return moment.strftime("%d/%m/%Y")


def format_time(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


def format_datetime(moment: datetime) -> str:
    """pt-BR style ``dd/mm/yyyy, HH:MM:SS``."""
    return f"{format_date(moment)}, {format_time(moment)}"


def report_variables(report: ScheduledReport, now_local: datetime) -> dict[str, str]:
    extras: dict[str, Any] = report.settings.model_extra or {}
    variables = {key: str(value) for key, value in extras.items()}
    variables.update(
        {
            "date": format_date(now_local),
            "time": format_time(now_local),
            "datetime": format_datetime(now_local),
            "report_name": report.name,
            "custom_text": report.settings.custom_text,
        }
    )
    return variables


def render_template(body: str, variables: dict[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown names become empty."""
    rendered = _PLACEHOLDER.sub(lambda m: variables.get(m.group(1), ""), body)
    return _BLANK_RUNS.sub("\n\n", rendered).strip()


def render_report_message(
    template: MessageTemplate, report: ScheduledReport, now_local: datetime
) -> str:
    """Build the WhatsApp text for one report run.

    A non-empty ``custom_text`` is appended when the template has no
    ``{{custom_text}}`` placeholder of its own.
    """
    message = render_template(template.body, report_variables(report, now_local))
    custom_text = report.settings.custom_text.strip()
    if custom_text and not re.search(r"\{\{\s*custom_text\s*\}\}", template.body):
        message = f"{message}\n\n{custom_text}" if message else custom_text
    return message
