"""Interfaces of collaborators consumed by the core loop."""
