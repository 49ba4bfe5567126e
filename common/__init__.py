"""Shared value types, geo helpers and logging for the heat map packages."""
