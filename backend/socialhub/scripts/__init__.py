"""Operational one-off commands."""
