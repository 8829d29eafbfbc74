"""Adapters: integrations of the history explorer with external libraries.

Contains:
- sqlalchemy_schema.py: schema registrations and reference loading for SQLAlchemy mapped classes
"""

__all__: list[str] = []
