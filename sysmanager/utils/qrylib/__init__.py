"""CQL statement library."""
