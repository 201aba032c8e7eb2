"""Errors, Protocol ports and application state shared across subsystems."""
