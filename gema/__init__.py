"""Domain core for a learning-platform API: models, SQLite repositories, request helpers and metrics."""

__version__ = "0.1.0"