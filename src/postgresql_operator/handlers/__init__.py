"""kopf handlers binding PostgreSQL objects to the reconciler."""

from .base import BaseHandler
from .postgresql import PostgreSQLHandler

__all__ = ["BaseHandler", "PostgreSQLHandler"]
