"""
Database package initialization.

The package follows a modular structure:
- base: Declarative base and model mixins
- connection: Async engine and session factory management
- transaction: Retrying unit-of-work runner
- models: SQLAlchemy ORM models for all entities
"""

__all__ = []
