"""Declarative Base — metadata shared by the registry, document, relation and media tables.

Invariants:
    - Every ORM model inherits from Base, so Base.metadata covers the whole schema
    - Alembic env.py and the test fixtures both build tables from Base.metadata

Design Decisions:
    - Lives apart from models/ so model modules can import it without cycles
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
