"""Adapters for the platform object store."""
