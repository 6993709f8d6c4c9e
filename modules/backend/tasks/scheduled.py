"""
Scheduled Background Tasks.

Housekeeping that runs on a schedule (cron-based). Lifecycle rules are
enforced on every access by NoteService; nothing here is needed for
correctness. The purge only reclaims storage from notes that can no
longer be read.

Schedule Format:
    schedule=[{"cron": "* * * * *", "args": [...], "kwargs": {...}}]

Cron Format:
    ┌───────────── minute (0-59)
    │ ┌───────────── hour (0-23)
    │ │ ┌───────────── day of month (1-31)
    │ │ │ ┌───────────── month (1-12)
    │ │ │ │ ┌───────────── day of week (0-6, Sun=0)
    │ │ │ │ │
    * * * * *

The purge schedule and retention window come from notes.yaml.
"""

from typing import Any

from modules.backend.core.config import get_app_config
from modules.backend.core.database import get_session_factory
from modules.backend.core.logging import get_logger, log_with_source
from modules.backend.core.utils import utc_now
from modules.backend.services.note import NoteService

logger = get_logger(__name__)

_registered: dict[str, Any] | None = None


async def purge_expired_notes(retention_days: int | None = None) -> dict[str, Any]:
    """
    Hard-delete notes that expired more than retention_days ago.

    Args:
        retention_days: Days to keep expired rows; defaults to notes.yaml

    Returns:
        Purge statistics
    """
    app_config = get_app_config()
    if not app_config.features.tasks_purge_enabled:
        log_with_source(logger, "tasks", "info", "Note purge disabled, skipping")
        return {"status": "skipped", "purged": 0, "completed_at": utc_now().isoformat()}

    if retention_days is None:
        retention_days = app_config.notes.purge.retention_days

    log_with_source(
        logger, "tasks", "info", "Starting note purge", retention_days=retention_days,
    )

    async with get_session_factory()() as session:
        service = NoteService(
            session,
            store_timeout=float(app_config.application.timeouts.background),
        )
        purged = await service.purge_expired(retention_days)
        await session.commit()

    result = {
        "status": "completed",
        "retention_days": retention_days,
        "purged": purged,
        "completed_at": utc_now().isoformat(),
    }

    log_with_source(logger, "tasks", "info", "Note purge completed", **result)
    return result


def get_scheduled_tasks() -> dict[str, dict[str, Any]]:
    """Schedule configuration, resolved from notes.yaml."""
    purge = get_app_config().notes.purge
    return {
        "purge_expired_notes": {
            "function": purge_expired_notes,
            "schedule": [
                {"cron": purge.cron, "kwargs": {"retention_days": purge.retention_days}},
            ],
            "retry_on_error": False,
            "description": "Hard-delete notes past the retention window",
        },
    }


def register_scheduled_tasks(broker: Any = None) -> dict[str, Any]:
    """
    Register scheduled task functions with the Taskiq broker. Idempotent.

    This wraps the plain async functions with broker.task decorators
    including their schedule configuration.

    Args:
        broker: Broker to register on; defaults to the process broker

    Returns:
        Dict mapping task names to registered task objects
    """
    global _registered
    if _registered is not None:
        return _registered

    if broker is None:
        from modules.backend.tasks.broker import get_broker

        broker = get_broker()
    registered = {}

    for task_name, config in get_scheduled_tasks().items():
        registered[task_name] = broker.task(
            task_name=task_name,
            schedule=config["schedule"],
            retry_on_error=config["retry_on_error"],
        )(config["function"])

    logger.info(
        "Scheduled tasks registered",
        extra={
            "task_count": len(registered),
            "tasks": list(registered.keys()),
        },
    )

    _registered = registered
    return registered
