"""Repository interfaces and their SQLAlchemy / in-memory implementations."""
