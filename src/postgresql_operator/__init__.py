"""Kubernetes operator that reconciles PostgreSQL cluster resources."""

__version__ = "0.1.0"
