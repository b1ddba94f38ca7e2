"""API routes package.

This package contains all API route handlers for the application.
"""
from . import actions
from . import solve
from . import simulate

__all__ = [
    "actions",
    "solve",
    "simulate",
]
