"""SQLAlchemy models owned by the gateway."""
