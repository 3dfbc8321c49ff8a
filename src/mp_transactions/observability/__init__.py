"""Observability – structured logging and correlation context."""
