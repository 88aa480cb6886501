"""Helpers shared by the schema client."""
