"""Core Layer — pure domain logic, no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are pure; documentId generation is the one source of randomness

Design Decisions:
    - Functional core separated from imperative shell: services feed core functions
      the data they loaded, core never loads
"""
