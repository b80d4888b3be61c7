"""Agile Planner - generate AI-ready agile backlogs from a project description."""

__version__ = "0.1.0"

from .models import Backlog, BacklogResult, Epic, Iteration, PlannerConfig, Priority, UserStory
from .generation import BacklogGenerator, create_provider, generate_backlog, validate_backlog

__all__ = [
    "__version__",
    "Backlog",
    "BacklogResult",
    "Epic",
    "Iteration",
    "PlannerConfig",
    "Priority",
    "UserStory",
    "BacklogGenerator",
    "create_provider",
    "generate_backlog",
    "validate_backlog",
]
