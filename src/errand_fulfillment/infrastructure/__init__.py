"""Database and Redis adapters."""
