"""
Background Tasks Package.

Taskiq-based background processing with a Redis broker. The only job is
the scheduled purge of long-expired notes.

Usage (with Redis - production):
    from modules.backend.tasks import get_broker, register_scheduled_tasks

    broker = get_broker()
    scheduled = register_scheduled_tasks()

Usage (without Redis - testing):
    from modules.backend.tasks.scheduled import purge_expired_notes

    result = await purge_expired_notes(retention_days=7)

CLI Commands:
    python run.py --action worker
    python run.py --action scheduler

    # Or directly with taskiq (the package attribute registers the tasks)
    taskiq worker modules.backend.tasks:broker
    taskiq scheduler modules.backend.tasks.scheduler:scheduler

Important:
    Run only ONE scheduler instance to avoid duplicate task execution.
"""

from modules.backend.tasks.broker import get_broker
from modules.backend.tasks.scheduler import get_scheduler
from modules.backend.tasks.scheduled import (
    get_scheduled_tasks,
    purge_expired_notes,
    register_scheduled_tasks,
)

__all__ = [
    "get_broker",
    "get_scheduler",
    "get_scheduled_tasks",
    "register_scheduled_tasks",
    "purge_expired_notes",
]


def __getattr__(name: str):
    """Lazy attribute access for broker and scheduler."""
    if name == "broker":
        register_scheduled_tasks()
        return get_broker()
    if name == "scheduler":
        return get_scheduler()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
