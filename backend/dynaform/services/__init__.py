"""Services Layer - use cases orchestrating core logic over repository ports.

Invariants:
    - Services depend on Protocols, never on a concrete adapter
    - Repository failures are returned as RepoResult, not raised
    - Only services retry; core and adapters never do

Design Decisions:
    - One file per use case for locality
"""
