"""Adapters – Kafka, SQLAlchemy and Redis implementations of the core ports."""
