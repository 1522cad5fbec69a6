"""Paths and default values used across the project."""

from pathlib import Path

# Base directory for all opsdispatch data
OPSDISPATCH_HOME = Path.home() / ".opsdispatch"

CONFIG_DIR = OPSDISPATCH_HOME
CONFIG_FILE = CONFIG_DIR / "config.json"
DATA_DIR = OPSDISPATCH_HOME / "data"

# Store file names (relative to the configured data dir)
TICKETS_FILENAME = "scheduled_tickets.json"
REPORTS_FILENAME = "scheduled_reports.json"
INTEGRATIONS_FILENAME = "integrations.json"
WEBHOOKS_FILENAME = "webhooks.json"
TEMPLATES_FILENAME = "message_templates.json"
RUN_LOG_FILENAME = "cron_run_logs.json"
DELIVERY_LOG_FILENAME = "report_delivery_logs.json"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

# Scheduling
DEFAULT_TIMEZONE = "America/Sao_Paulo"
DEFAULT_BATCH_CRON = "* * * * *"

# Outbound HTTP
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

# Audit log retention (number of run-log records kept)
DEFAULT_RUN_LOG_RETENTION = 5000

# Pipeline identifiers, used as run-log job names and scheduler job ids
TICKETS_PIPELINE = "glpi-scheduled-tickets"
REPORTS_PIPELINE = "scheduled-reports"

# Webhook trigger types
TRIGGER_PROBLEM_CREATED = "problem_created"
TRIGGER_PROBLEM_RESOLVED = "problem_resolved"
