"""
CLI Commands.

Organized by domain/feature area.
"""

from modules.cli.commands.auth import app as auth_app
from modules.cli.commands.db import app as db_app
from modules.cli.commands.health import app as health_app
from modules.cli.commands.note import app as note_app

__all__ = [
    "auth_app",
    "db_app",
    "health_app",
    "note_app",
]
