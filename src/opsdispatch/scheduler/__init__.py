"""Scheduled job pipelines: cron math, execution, batch runs, and the timer."""

from opsdispatch.scheduler.cron import next_execution, validate_cron
from opsdispatch.scheduler.executor import ExecutionResult, JobExecutor
from opsdispatch.scheduler.runner import BatchReport, BatchRunner, BatchTrigger, ScheduleAdvancer

__all__ = [
    "BatchReport",
    "BatchRunner",
    "BatchTrigger",
    "ExecutionResult",
    "JobExecutor",
    "ScheduleAdvancer",
    "next_execution",
    "validate_cron",
]
