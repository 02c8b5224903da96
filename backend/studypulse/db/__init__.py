"""Database package: async engine, session factory and ORM models."""
