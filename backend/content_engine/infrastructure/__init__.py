"""Infrastructure Layer — database sessions, SQL-backed stores, logging setup.

Invariants:
    - Every IO boundary the core depends on is implemented here
    - Stores take an AsyncSession; they flush but never commit

Design Decisions:
    - Commit belongs to the service that owns the unit of work, so one write
      (payload + relation edges) is one transaction
"""
