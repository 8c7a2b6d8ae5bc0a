"""Operational scripts for database setup and migrations."""
