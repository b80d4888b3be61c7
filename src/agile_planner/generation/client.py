"""Completion client adapter.

Wraps the OpenAI SDK behind the ``CompletionProvider`` protocol. Groq serves
an OpenAI-compatible API, so both providers share one implementation and
differ only in base URL and model.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from openai import OpenAI

from ..errors import ConfigurationError, EmptyCompletionError
from ..protocols import CompletionProvider, CompletionRequest
from .prompts import FUNCTION_NAME, build_function_spec


OPENAI_MODEL = "gpt-4.1"
GROQ_MODEL = "llama3-70b-8192"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAIProvider:
    """Primary provider: the OpenAI chat completions API."""

    name = "openai"
    base_url: Optional[str] = None
    default_model = OPENAI_MODEL

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[Any] = None,
    ):
        """Initialize the provider.

        Args:
            api_key: API key for the endpoint.
            model: Model id (default: the provider's flagship model).
            timeout: Per-request timeout in seconds (None = SDK default).
            client: Pre-built OpenAI-compatible client (mainly for tests).
        """
        self.model = model or self.default_model
        if client is not None:
            self._client = client
        else:
            kwargs: dict[str, Any] = {"api_key": api_key}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            if timeout is not None:
                kwargs["timeout"] = timeout
            self._client = OpenAI(**kwargs)

    def complete(self, request: CompletionRequest) -> Any:
        """Send one chat completion request."""
        return self._client.chat.completions.create(**request.to_kwargs())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


class GroqProvider(OpenAIProvider):
    """Secondary provider: Groq's OpenAI-compatible endpoint."""

    name = "groq"
    base_url = GROQ_BASE_URL
    default_model = GROQ_MODEL


def create_provider(
    openai_key: Optional[str] = None,
    groq_key: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CompletionProvider:
    """Pick and build a provider from the available credentials.

    The OpenAI key wins when both are present.

    Raises:
        ConfigurationError: If neither key is set. No network call is made.
    """
    if openai_key:
        return OpenAIProvider(openai_key, timeout=timeout)
    if groq_key:
        return GroqProvider(groq_key, timeout=timeout)
    raise ConfigurationError("No API key provided for OpenAI or GROQ")


@dataclass
class ApiCallResult:
    """Outcome of one structured completion call.

    ``valid`` means the model produced parseable function arguments, not that
    they match the schema.
    """
    valid: bool
    data: Any = None
    function_call: Any = None
    error: Optional[str] = None


def _extract_function_call(completion: Any) -> Any:
    choices = getattr(completion, "choices", None)
    if not choices:
        raise EmptyCompletionError()
    return getattr(choices[0].message, "function_call", None)


def request_structured_backlog(
    provider: CompletionProvider,
    model: str,
    messages: list[dict],
    schema: dict,
    temperature: float = 0.7,
    max_tokens: int = 8192,
) -> ApiCallResult:
    """Ask the model for a backlog through a forced function call.

    Makes exactly one request and never retries.

    Args:
        provider: Completion provider to call.
        model: Model id.
        messages: Conversation so far.
        schema: JSON Schema used as the function's parameters.
        temperature: Sampling temperature.
        max_tokens: Completion token cap.

    Returns:
        ApiCallResult, invalid when no choice, no function call, or
        unparseable arguments came back.

    Raises:
        Exception: Anything the provider raises other than the empty-choices
            condition is propagated unchanged.
    """
    request = CompletionRequest(
        model=model,
        messages=list(messages),
        functions=[build_function_spec(schema)],
        function_call={"name": FUNCTION_NAME},
        temperature=temperature,
        max_tokens=max_tokens,
    )

    try:
        function_call = _extract_function_call(provider.complete(request))
    except EmptyCompletionError as e:
        return ApiCallResult(valid=False, error=str(e))

    if function_call is None:
        return ApiCallResult(valid=False, error="No function call returned by the API")

    try:
        parsed = json.loads(function_call.arguments)
    except (json.JSONDecodeError, TypeError) as e:
        return ApiCallResult(valid=False, error=f"JSON parsing error: {e}")

    return ApiCallResult(valid=True, data=parsed, function_call=function_call)
