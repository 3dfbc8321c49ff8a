"""
mp_transactions – sagas, event sourcing and reliable messaging.

Import path convention::

    from mp_transactions.application.saga import SagaOrchestrator, saga, step
    from mp_transactions.kernel.ddd import AggregateRoot, DomainEvent
    from mp_transactions.application.event_sourcing import InMemoryEventStore
    from mp_transactions.application.outbox import InMemoryOutbox, OutboxRelay
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
