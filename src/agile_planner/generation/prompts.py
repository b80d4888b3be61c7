"""Message construction for backlog generation.

Everything here is pure string building so the conversation sent to the
model can be asserted on directly in tests.
"""

import json
from typing import Any


FUNCTION_NAME = "deliver_backlog"
FUNCTION_DESCRIPTION = "Returns a structured agile backlog as JSON"

SYSTEM_PROMPT = (
    "You are an expert agile product owner. Generate a detailed agile backlog "
    "as a valid JSON object strictly following the given JSON schema and "
    "structure. Include all required fields and respect all constraints."
)

SHAPE_PROMPT = """The backlog must contain:
- An 'epic' object (title, description)
- An 'mvp' array (3 to 5 complete user stories with id, title, description, acceptance_criteria, tasks, priority)
- An 'iterations' array (2 to 3 iterations, each with a name, a goal, and stories following the user story schema)
Strictly follow this format. Do not invent extra fields.
Produce a valid JSON that I can use directly."""


def build_messages(project_description: str) -> list[dict]:
    """Build the initial conversation for a project.

    Args:
        project_description: Free-text description, inserted verbatim.

    Returns:
        Three turns: role/constraint system turn, user turn, shape system turn.
    """
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": f"Project description: {project_description}"},
        {"role": "system", "content": SHAPE_PROMPT},
    ]


def build_function_spec(schema: dict) -> dict:
    """Function definition constraining the model's output to ``schema``."""
    return {
        "name": FUNCTION_NAME,
        "description": FUNCTION_DESCRIPTION,
        "parameters": schema,
    }


def build_assistant_echo(function_call: Any) -> dict:
    """Echo the model's previous function call back as an assistant turn.

    Accepts either an SDK ``FunctionCall`` object or a plain dict.
    """
    if isinstance(function_call, dict):
        name = function_call.get("name", FUNCTION_NAME)
        arguments = function_call.get("arguments", "")
    else:
        name = getattr(function_call, "name", None) or FUNCTION_NAME
        arguments = getattr(function_call, "arguments", "")

    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)

    return {
        "role": "assistant",
        "content": None,
        "function_call": {"name": name, "arguments": arguments},
    }


def build_correction_message(error_message: str) -> dict:
    """System turn reporting schema violations back to the model."""
    return {
        "role": "system",
        "content": (
            f"The JSON response is not valid: {error_message}. "
            f"Only send back the conforming JSON via {FUNCTION_NAME}."
        ),
    }
