"""Taskpilot - plan/execute agent loop with bounded budgets and human escalation."""

__version__ = "0.1.0"
