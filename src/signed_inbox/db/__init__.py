"""Database configuration and utilities."""

from .session import Base, build_engine, build_session_factory, create_tables

__all__ = ["Base", "build_engine", "build_session_factory", "create_tables"]
