"""API routes."""

from . import backlog

__all__ = ["backlog"]
