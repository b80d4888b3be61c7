"""Data models for the agile planner.

Uses Pydantic for validation. The schema layer (generation/schema.py) is the
contract the model output is checked against; these models are the typed
view of a backlog once it has passed that check.
"""

from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Priority(str, Enum):
    """Implementation priority of a user story."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class LogEntryType(str, Enum):
    """Types of entries written to a generation log."""
    GENERATION_START = "generation_start"
    ATTEMPT = "attempt"
    API_ERROR = "api_error"
    VALIDATION_FAILED = "validation_failed"
    GENERATION_SUCCESS = "generation_success"
    GENERATION_FAILED = "generation_failed"
    EXCEPTION = "exception"


class Epic(BaseModel):
    """The single strategic goal a backlog is built around."""
    model_config = ConfigDict(extra="allow", frozen=True)

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


class UserStory(BaseModel):
    """A user story, shared by the MVP and by iterations."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., pattern=r"^US\d{3}$", description="Story id, e.g. US001")
    title: str
    description: str
    acceptance_criteria: list[str] = Field(..., min_length=2)
    tasks: list[str] = Field(..., min_length=2)
    priority: Priority

    # Ids of stories that must be done first
    dependencies: Optional[list[str]] = None


class Iteration(BaseModel):
    """A named, goal-bearing group of stories for a later cycle."""
    model_config = ConfigDict(extra="allow")

    name: str
    goal: str
    stories: list[UserStory] = Field(..., min_length=1)


class Backlog(BaseModel):
    """The complete generated artifact: epic, MVP stories and iterations."""
    model_config = ConfigDict(extra="allow")

    epic: Epic
    mvp: list[UserStory] = Field(..., min_length=3, max_length=5)
    iterations: list[Iteration] = Field(..., min_length=2, max_length=3)

    @model_validator(mode="before")
    @classmethod
    def _promote_legacy_epics(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return normalize_backlog(data)
        return data

    def all_stories(self) -> Iterator[UserStory]:
        """Yield MVP stories first, then iteration stories in order."""
        yield from self.mvp
        for iteration in self.iterations:
            yield from iteration.stories

    def to_json_dict(self) -> dict:
        """Dump in the wire shape (no null optional fields)."""
        return self.model_dump(mode="json", exclude_none=True)


def normalize_backlog(data: dict) -> dict:
    """Return ``data`` in the canonical single-``epic`` shape.

    Older payloads carry ``epics`` (a list) instead of ``epic``. The first
    entry is promoted and ``epics`` is dropped. The input is never mutated;
    a shallow copy is returned whenever anything changes.
    """
    if not isinstance(data, dict) or "epics" not in data:
        return data

    normalized = dict(data)
    epics = normalized.pop("epics")
    if "epic" not in normalized and isinstance(epics, list) and epics:
        normalized["epic"] = epics[0]
    return normalized


class ErrorInfo(BaseModel):
    """Diagnostic carried by a failed result."""
    message: str


class BacklogResult(BaseModel):
    """Result envelope returned by every top-level generation call.

    Exactly one of ``result`` and ``error`` is set, matching ``success``.
    """
    success: bool
    result: Optional[Backlog] = None
    error: Optional[ErrorInfo] = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "BacklogResult":
        if self.success and (self.result is None or self.error is not None):
            raise ValueError("successful result must carry a backlog and no error")
        if not self.success and (self.error is None or self.result is not None):
            raise ValueError("failed result must carry an error and no backlog")
        return self

    @classmethod
    def ok(cls, backlog: Backlog | dict) -> "BacklogResult":
        """Build a successful envelope."""
        if isinstance(backlog, dict):
            backlog = Backlog.model_validate(backlog)
        return cls(success=True, result=backlog)

    @classmethod
    def fail(cls, message: str) -> "BacklogResult":
        """Build a failed envelope."""
        return cls(success=False, error=ErrorInfo(message=message))


class PlannerConfig(BaseModel):
    """Configuration for backlog generation."""
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Maximum completion round trips before giving up"
    )
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8192, gt=0)

    # No timeout in the loop itself; this bounds each completion call
    request_timeout_seconds: Optional[float] = Field(
        default=120.0,
        description="Per-attempt timeout passed to the completion client (None = SDK default)"
    )

    output_dir_name: str = Field(
        default=".agile-planner-backlog",
        description="Directory created under the output path for rendered files"
    )
