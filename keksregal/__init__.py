"""Keksregal cookie analysis engine."""
