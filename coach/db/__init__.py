"""Database engine helpers and ORM models."""
