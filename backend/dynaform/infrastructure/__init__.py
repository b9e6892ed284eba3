"""Infrastructure Layer - storage adapters and cross-cutting concerns.

Invariants:
    - Adapters satisfy the core Protocols structurally
    - Every storage exception is mapped to a FormsError before leaving an adapter

Design Decisions:
    - In-memory and SQL adapters share the ChangeFeed for subscriptions
"""
