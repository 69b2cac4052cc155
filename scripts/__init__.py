"""Operational scripts (schema migrations, admin seeding)."""
