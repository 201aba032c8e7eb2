"""
taskboard: a kanban-style task board engine.

Subpackages:
- tasks: entity models, SQLite store, request/response API, subtask progress
- board: board snapshot, drag engine, API client, board controller
- core: errors, ports (Protocols), application state
- cli / connectors: console entrypoint, slash commands, local session
"""

__version__ = "0.1.0"
