"""Tests for report message rendering."""

from __future__ import annotations

from datetime import datetime

from opsdispatch.reports.render import render_report_message, render_template
from opsdispatch.store.models import MessageTemplate, ScheduledReport

MOMENT = datetime(2024, 6, 10, 8, 5, 9)


def _report(**settings) -> ScheduledReport:
    return ScheduledReport(
        owner_id="u1",
        name="Resumo diário",
        cron_expression="0 8 * * *",
        phone_number="5511999990000",
        report_type="tpl",
        settings=settings,
    )


def test_builtin_variables():
    template = MessageTemplate(name="t", body="{{report_name}} em {{date}} às {{time}}")
    assert render_report_message(template, _report(), MOMENT) == "Resumo diário em 10/06/2024 às 08:05:09"


def test_settings_extras_are_variables():
    template = MessageTemplate(name="t", body="Região: {{region}}")
    assert render_report_message(template, _report(region="sul"), MOMENT) == "Região: sul"


def test_unknown_placeholders_removed_and_blank_lines_collapsed():
    assert render_template("a\n\n{{missing}}\n\n\nb", {}) == "a\n\nb"


def test_custom_text_appended_when_not_in_template():
    template = MessageTemplate(name="t", body="Olá")
    assert render_report_message(template, _report(custom_text="Extra"), MOMENT) == "Olá\n\nExtra"


def test_custom_text_placeholder_not_duplicated():
    template = MessageTemplate(name="t", body="Nota: {{ custom_text }}")
    assert render_report_message(template, _report(custom_text="Extra"), MOMENT) == "Nota: Extra"
