"""Schema definition for a generated backlog.

The schema is sent to the model as the function-call parameter spec and
used to check whatever comes back. Validation fails soft: it returns a
``SchemaValidation`` listing every violation instead of raising.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

import jsonschema

from ..models import normalize_backlog


STORY_ID_PATTERN = r"^US\d{3}$"
STORY_ID_LENGTH = 5
PRIORITIES = ["HIGH", "MEDIUM", "LOW"]


def create_backlog_schema() -> dict:
    """Build the backlog JSON Schema.

    Returns a fresh dict on every call. Iteration stories reference the MVP
    item schema so both places accept exactly the same story shape.
    """
    return {
        "type": "object",
        "required": ["epic", "mvp", "iterations"],
        "properties": {
            "epic": {
                "type": "object",
                "required": ["title", "description"],
                "properties": {
                    "title": {"type": "string", "minLength": 1},
                    "description": {"type": "string", "minLength": 1},
                },
            },
            "mvp": {
                "type": "array",
                "minItems": 3,
                "maxItems": 5,
                "items": {
                    "type": "object",
                    "required": [
                        "id", "title", "description",
                        "acceptance_criteria", "tasks", "priority",
                    ],
                    "properties": {
                        "id": {
                            "type": "string",
                            "pattern": STORY_ID_PATTERN,
                            # "$" also matches before a trailing newline
                            "minLength": STORY_ID_LENGTH,
                            "maxLength": STORY_ID_LENGTH,
                        },
                        "title": {"type": "string"},
                        "description": {"type": "string"},
                        "acceptance_criteria": {
                            "type": "array",
                            "minItems": 2,
                            "items": {"type": "string"},
                        },
                        "tasks": {
                            "type": "array",
                            "minItems": 2,
                            "items": {"type": "string"},
                        },
                        "priority": {"enum": list(PRIORITIES)},
                        "dependencies": {
                            "type": "array",
                            "items": {"type": "string"},
                        },
                    },
                },
            },
            "iterations": {
                "type": "array",
                "minItems": 2,
                "maxItems": 3,
                "items": {
                    "type": "object",
                    "required": ["name", "goal", "stories"],
                    "properties": {
                        "name": {"type": "string"},
                        "goal": {"type": "string"},
                        "stories": {
                            "type": "array",
                            "minItems": 1,
                            "items": {"$ref": "#/properties/mvp/items"},
                        },
                    },
                },
            },
        },
    }


@dataclass(frozen=True)
class Violation:
    """A single schema violation."""
    instance_path: str
    message: str
    keyword: str = ""

    def __str__(self) -> str:
        if not self.instance_path:
            return self.message
        return f"{self.instance_path} {self.message}"


@dataclass
class SchemaValidation:
    """Outcome of validating one backlog against the schema."""
    valid: bool
    violations: list[Violation] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        """Violations formatted ``<instancePath> <message>``, joined by ``; ``."""
        return "; ".join(str(v) for v in self.violations)


def _instance_path(error: jsonschema.ValidationError) -> str:
    """JSON-pointer path of the offending value ('' for the root)."""
    return "".join(f"/{part}" for part in error.absolute_path)


def _describe(error: jsonschema.ValidationError) -> str:
    """Short, stable message for a violation.

    jsonschema's own messages embed a repr of the offending instance, which
    for arrays of stories is unreadable and would bloat the correction turn.
    """
    keyword = error.validator
    value = error.validator_value

    if keyword == "minItems":
        return f"must NOT have fewer than {value} items"
    if keyword == "maxItems":
        return f"must NOT have more than {value} items"
    if keyword == "minLength":
        return f"must NOT have fewer than {value} characters"
    if keyword == "maxLength":
        return f"must NOT have more than {value} characters"
    if keyword == "pattern":
        return f'must match pattern "{value}"'
    if keyword == "enum":
        return "must be equal to one of the allowed values"
    if keyword == "type":
        return f"must be {value}"
    return error.message


def _sort_key(error: jsonschema.ValidationError) -> tuple:
    return (len(error.absolute_path), [str(p) for p in error.absolute_path], str(error.validator))


def validate_backlog(data: Any, schema: Optional[dict] = None) -> SchemaValidation:
    """Validate a backlog against the schema.

    The data is normalized to the single-``epic`` shape first; neither the
    input nor the schema is modified.

    Args:
        data: Parsed backlog (usually a dict from the model's function call).
        schema: Schema to use (default: ``create_backlog_schema()``).

    Returns:
        SchemaValidation with all violations found.
    """
    if schema is None:
        schema = create_backlog_schema()

    validator = jsonschema.Draft7Validator(schema)
    errors = sorted(validator.iter_errors(normalize_backlog(data)), key=_sort_key)

    if not errors:
        return SchemaValidation(valid=True)

    violations = []
    for error in errors:
        if error.validator == "required" and isinstance(error.instance, dict):
            # One violation per missing property, like ajv with allErrors
            for name in error.validator_value:
                if name not in error.instance:
                    violations.append(Violation(
                        instance_path=_instance_path(error),
                        message=f"must have required property '{name}'",
                        keyword="required",
                    ))
            continue
        violations.append(Violation(
            instance_path=_instance_path(error),
            message=_describe(error),
            keyword=str(error.validator),
        ))

    return SchemaValidation(valid=False, violations=violations)


def find_duplicate_story_ids(data: dict) -> list[str]:
    """Return story ids used more than once across MVP and iterations.

    Not part of the schema: a story planned in the MVP may legitimately be
    listed again in an iteration. Used for warnings only.
    """
    data = normalize_backlog(data)
    ids = [story.get("id") for story in data.get("mvp", []) if isinstance(story, dict)]
    for iteration in data.get("iterations", []):
        if isinstance(iteration, dict):
            ids.extend(
                story.get("id") for story in iteration.get("stories", [])
                if isinstance(story, dict)
            )
    counts = Counter(i for i in ids if i)
    return sorted(story_id for story_id, count in counts.items() if count > 1)
