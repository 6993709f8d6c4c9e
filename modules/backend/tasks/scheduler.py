"""
Purge Scheduler.

Builds the Taskiq scheduler that fires the note purge on the cron
expression from notes.yaml. Schedules are attached as task labels at
registration time and read back through LabelScheduleSource.

Usage:
    python run.py --action scheduler
    taskiq scheduler modules.backend.tasks.scheduler:scheduler

Run a single scheduler process per deployment; each instance fires
every scheduled purge independently.
"""

from typing import TYPE_CHECKING

from modules.backend.core.config import get_app_config
from modules.backend.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

if TYPE_CHECKING:
    from taskiq import AsyncBroker, TaskiqScheduler

_scheduler: "TaskiqScheduler | None" = None


def create_scheduler(broker: "AsyncBroker | None" = None) -> "TaskiqScheduler":
    """Register the purge task on the broker and wrap it in a scheduler."""
    from taskiq import TaskiqScheduler
    from taskiq.schedule_sources import LabelScheduleSource

    from modules.backend.tasks.broker import get_broker
    from modules.backend.tasks.scheduled import register_scheduled_tasks

    if broker is None:
        broker = get_broker()
    registered = register_scheduled_tasks(broker)

    app_config = get_app_config()
    if not app_config.features.tasks_purge_enabled:
        log_with_source(
            logger, "tasks", "warning",
            "Note purge disabled; scheduled runs will be skipped",
        )

    log_with_source(
        logger, "tasks", "info", "Purge scheduler configured",
        cron=app_config.notes.purge.cron,
        tasks=list(registered),
    )

    return TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])


def get_scheduler() -> "TaskiqScheduler":
    """Return the process-wide scheduler, building it on first use."""
    global _scheduler
    if _scheduler is None:
        _scheduler = create_scheduler()
    return _scheduler


def __getattr__(name: str):
    if name == "scheduler":
        return get_scheduler()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
