"""Exception types raised inside the planner.

``create_provider`` raises ConfigurationError to its caller. During
generation nothing escapes: the generator turns every exception into a
failed ``BacklogResult``.
"""


class PlannerError(Exception):
    """Base class for planner errors."""


class ConfigurationError(PlannerError):
    """No usable provider credential or client was supplied."""


class EmptyCompletionError(PlannerError):
    """The completion API answered without any choice."""

    def __init__(self, message: str = "Invalid API response: no choices returned"):
        super().__init__(message)
