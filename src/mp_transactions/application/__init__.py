"""Application layer – event sourcing, event bus, outbox/inbox and sagas."""
