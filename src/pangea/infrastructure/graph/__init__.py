"""Dependency graph over templates."""
