"""Character database schema and seed data."""
