"""Importers that turn meter exports into readings."""
