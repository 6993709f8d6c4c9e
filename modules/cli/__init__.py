"""
CLI Client Module.

Command-line note client built with Typer for communicating with the
backend API.

Architecture:
- Note encryption, decryption and link handling happen here, never on the server
- Lifecycle rules live in the backend
- CLI calls backend via HTTP (httpx)
- Sends X-Frontend-ID: cli header for log routing

Usage:
    python cli.py --help
    python cli.py note create --ttl 5 --view-once
    python cli.py note open "<link>"
    python cli.py health ping
"""
