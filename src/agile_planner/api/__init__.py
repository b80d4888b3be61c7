"""HTTP API for the Agile Planner.

Exposes backlog generation and validation over REST.
"""

from .main import create_app, run_server

__all__ = ["create_app", "run_server"]
