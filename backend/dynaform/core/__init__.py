"""Core Layer - pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, infrastructure/, db/ or models/
    - All functions are pure and deterministic apart from the UTC clock
    - repository_protocols declares async ports but core never awaits them

Design Decisions:
    - Functional core separated from imperative shell: services orchestrate IO
      around these pure functions
"""
