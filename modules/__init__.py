"""
Application Modules.

- backend/: Note lifecycle service, API, database, configuration, tasks
- cli/: Note client (encryption, links) and Typer + Rich commands
"""
