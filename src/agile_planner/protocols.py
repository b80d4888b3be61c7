"""Protocol definitions for dependency injection.

These protocols define the interfaces the generator depends on, enabling:
- Loose coupling between the loop and a concrete completion provider
- Easy testing via stub implementations
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable


@dataclass
class CompletionRequest:
    """One function-calling chat completion request."""
    model: str
    messages: list[dict]
    functions: list[dict] = field(default_factory=list)
    function_call: Optional[dict] = None
    temperature: float = 0.7
    max_tokens: int = 8192

    def to_kwargs(self) -> dict:
        """Keyword arguments for ``chat.completions.create``."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": self.messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.functions:
            kwargs["functions"] = self.functions
        if self.function_call:
            kwargs["function_call"] = self.function_call
        return kwargs


@runtime_checkable
class CompletionProvider(Protocol):
    """Protocol for a function-calling chat completion provider.

    Abstracts the provider (OpenAI, Groq, ...) so the generation loop
    never inspects which endpoint it is talking to.
    """

    name: str
    model: str

    def complete(self, request: CompletionRequest) -> Any:
        """Send one chat completion request and return the raw response.

        The response must expose ``choices[i].message.function_call`` with
        ``name`` and ``arguments`` attributes, as the OpenAI SDK does.
        """
        ...


@runtime_checkable
class GenerationLog(Protocol):
    """Protocol for generation event logging."""

    def log_generation_start(self, project: str, provider: str, model: str) -> None:
        """Log the start of a generation."""
        ...

    def log_attempt(self, attempt: int, message_count: int) -> None:
        """Log the start of one completion attempt."""
        ...

    def log_api_error(self, attempt: int, error: str) -> None:
        """Log an attempt that produced no usable output."""
        ...

    def log_validation_failed(self, attempt: int, error_message: str, violation_count: int) -> None:
        """Log an attempt whose output failed schema validation."""
        ...

    def log_generation_end(self, success: bool, attempts: int, error: Optional[str] = None) -> None:
        """Log the end of a generation."""
        ...

    def log_exception(self, error: BaseException) -> None:
        """Log an exception caught at the generation boundary."""
        ...
