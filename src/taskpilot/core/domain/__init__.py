"""Core domain: planning/execution loop and its data model."""
