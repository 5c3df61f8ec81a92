"""Destination integrations (Notion)."""
