"""Persistence: SQLAlchemy engine, ORM models, repositories and migrations."""
