"""Kanban workflow backend: projects moving through a six-stage lifecycle."""
