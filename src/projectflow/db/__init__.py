"""Database engine, sessions and seed helpers."""
