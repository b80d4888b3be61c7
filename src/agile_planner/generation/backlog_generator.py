"""AI-driven backlog generation from a project description.

Asks a completion provider for a backlog through a forced function call,
validates the answer against the backlog schema and, when it does not
conform, feeds the violations back into the conversation before retrying.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..models import Backlog, BacklogResult, PlannerConfig, normalize_backlog
from ..protocols import CompletionProvider, GenerationLog
from .client import ApiCallResult, request_structured_backlog
from .prompts import build_assistant_echo, build_correction_message, build_messages
from .schema import Violation, create_backlog_schema, validate_backlog


DEFAULT_MAX_ATTEMPTS = 3

MISSING_CLIENT_MESSAGE = "API client is not configured"
VALIDATION_FAILED_MESSAGE = "Backlog validation failed"
UNEXPECTED_ERROR_MESSAGE = "An error occurred while generating the backlog"


@dataclass
class GenerationAttempt:
    """What happened during one completion attempt."""
    index: int
    api_result: ApiCallResult
    violations: list[Violation] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.api_result.valid and not self.violations


@dataclass
class GenerationOutcome:
    """Result of running the generation loop."""
    success: bool
    data: Optional[dict] = None
    attempts: list[GenerationAttempt] = field(default_factory=list)
    last_errors: Optional[list[Violation]] = None

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def error_message(self) -> str:
        """First recorded failure message, or a generic one."""
        if self.last_errors:
            return str(self.last_errors[0])
        return VALIDATION_FAILED_MESSAGE


def attempt_backlog_generation(
    provider: CompletionProvider,
    model: str,
    messages: list[dict],
    schema: dict,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    temperature: float = 0.7,
    max_tokens: int = 8192,
    logger: Optional[GenerationLog] = None,
) -> GenerationOutcome:
    """Call the provider until it returns a schema-valid backlog.

    ``messages`` is extended in place with the repair turns so callers can
    inspect the final conversation.

    Args:
        provider: Completion provider.
        model: Model id.
        messages: Initial conversation (see ``build_messages``).
        schema: Backlog schema.
        max_attempts: Hard cap on completion calls.
        temperature: Sampling temperature.
        max_tokens: Completion token cap.
        logger: Optional event log.

    Returns:
        GenerationOutcome with the normalized backlog on success.
    """
    attempts: list[GenerationAttempt] = []
    last_errors: Optional[list[Violation]] = None

    for index in range(1, max_attempts + 1):
        if logger:
            logger.log_attempt(index, len(messages))

        api_result = request_structured_backlog(
            provider, model, messages, schema,
            temperature=temperature, max_tokens=max_tokens,
        )

        if not api_result.valid:
            # Unlike schema failures, no correction turn is appended here:
            # the next attempt resends the same conversation. Kept as-is
            # until product decides whether parse failures should be fed back.
            attempts.append(GenerationAttempt(index=index, api_result=api_result))
            last_errors = [Violation(instance_path="", message=api_result.error or "")]
            if logger:
                logger.log_api_error(index, api_result.error or "")
            continue

        data = normalize_backlog(api_result.data)
        validation = validate_backlog(data, schema)

        if validation.valid:
            attempts.append(GenerationAttempt(index=index, api_result=api_result))
            return GenerationOutcome(success=True, data=data, attempts=attempts)

        attempts.append(GenerationAttempt(
            index=index,
            api_result=api_result,
            violations=validation.violations,
        ))
        last_errors = validation.violations
        if logger:
            logger.log_validation_failed(
                index, validation.error_message, len(validation.violations)
            )

        messages.append(build_assistant_echo(api_result.function_call))
        messages.append(build_correction_message(validation.error_message))

    return GenerationOutcome(success=False, attempts=attempts, last_errors=last_errors)


class BacklogGenerator:
    """Generates validated agile backlogs using a completion provider."""

    def __init__(
        self,
        provider: Optional[CompletionProvider],
        config: Optional[PlannerConfig] = None,
        logger: Optional[GenerationLog] = None,
    ):
        """Initialize the generator.

        Args:
            provider: Completion provider (None yields a configuration failure on generate).
            config: Generation settings (default: PlannerConfig()).
            logger: Optional event log.
        """
        self.provider = provider
        self.config = config or PlannerConfig()
        self.logger = logger
        self.last_outcome: Optional[GenerationOutcome] = None

    @property
    def model(self) -> Optional[str]:
        return self.provider.model if self.provider is not None else None

    def generate(self, project_id: str, description: str = "") -> BacklogResult:
        """Generate a backlog for a project.

        Never raises: every failure, including unexpected exceptions, comes
        back as a failed BacklogResult.

        Args:
            project_id: Project name or identifier.
            description: Free-text project description.

        Returns:
            BacklogResult carrying either the backlog or an error message.
        """
        if self.provider is None:
            return BacklogResult.fail(MISSING_CLIENT_MESSAGE)

        try:
            return self._generate(project_id, description)
        except Exception as e:
            if self.logger:
                self.logger.log_exception(e)
            return BacklogResult.fail(str(e) or UNEXPECTED_ERROR_MESSAGE)

    def _generate(self, project_id: str, description: str) -> BacklogResult:
        project = f"{project_id}: {description}"
        schema = create_backlog_schema()
        messages = build_messages(project)

        if self.logger:
            self.logger.log_generation_start(project, self.provider.name, self.provider.model)

        outcome = attempt_backlog_generation(
            self.provider,
            self.provider.model,
            messages,
            schema,
            max_attempts=self.config.max_attempts,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            logger=self.logger,
        )
        self.last_outcome = outcome

        if outcome.success:
            result = BacklogResult.ok(Backlog.model_validate(outcome.data))
            if self.logger:
                self.logger.log_generation_end(True, outcome.attempt_count)
            return result

        if self.logger:
            self.logger.log_generation_end(False, outcome.attempt_count, outcome.error_message)
        return BacklogResult.fail(outcome.error_message)


def generate_backlog(
    project_id: str,
    description: str,
    provider: Optional[CompletionProvider],
    config: Optional[PlannerConfig] = None,
    logger: Optional[GenerationLog] = None,
) -> BacklogResult:
    """Generate a backlog with a one-off BacklogGenerator."""
    return BacklogGenerator(provider, config=config, logger=logger).generate(project_id, description)
