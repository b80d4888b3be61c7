"""Generation module for AI-driven backlog creation.

This module provides tools to:
- Describe and check the backlog shape (schema.py)
- Build the conversation sent to the model (prompts.py)
- Talk to OpenAI-compatible completion providers (client.py)
- Run the generate/validate/repair loop (backlog_generator.py)
"""

from .schema import SchemaValidation, Violation, create_backlog_schema, validate_backlog
from .prompts import build_messages
from .client import (
    ApiCallResult,
    GroqProvider,
    OpenAIProvider,
    create_provider,
    request_structured_backlog,
)
from .backlog_generator import (
    BacklogGenerator,
    GenerationAttempt,
    GenerationOutcome,
    attempt_backlog_generation,
    generate_backlog,
)

__all__ = [
    "SchemaValidation",
    "Violation",
    "create_backlog_schema",
    "validate_backlog",
    "build_messages",
    "ApiCallResult",
    "GroqProvider",
    "OpenAIProvider",
    "create_provider",
    "request_structured_backlog",
    "BacklogGenerator",
    "GenerationAttempt",
    "GenerationOutcome",
    "attempt_backlog_generation",
    "generate_backlog",
]
