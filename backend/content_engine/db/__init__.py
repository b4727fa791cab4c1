"""Database Package — declarative Base shared by every ORM model.

Invariants:
    - Models register on Base.metadata when content_engine.models is imported
"""
