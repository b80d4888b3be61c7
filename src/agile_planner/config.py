"""Credential lookup from the environment.

Keys are read from the process environment, optionally seeded from a
``.env`` file. Values already set in the environment take precedence.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv

from .generation.client import create_provider
from .protocols import CompletionProvider


OPENAI_KEY_VAR = "OPENAI_API_KEY"
GROQ_KEY_VAR = "GROQ_API_KEY"


@dataclass(frozen=True)
class Credentials:
    """API keys available to the planner."""
    openai_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None

    @property
    def has_any(self) -> bool:
        return bool(self.openai_api_key or self.groq_api_key)

    @property
    def provider_name(self) -> Optional[str]:
        """Provider the keys select ('openai' wins over 'groq')."""
        if self.openai_api_key:
            return "openai"
        if self.groq_api_key:
            return "groq"
        return None


def load_credentials(env_file: Optional[Path | str] = None) -> Credentials:
    """Read API keys from the environment.

    Args:
        env_file: Explicit .env file (default: search from the working directory).

    Returns:
        Credentials; empty strings are treated as unset.
    """
    if env_file is not None:
        load_dotenv(dotenv_path=Path(env_file), override=False)
    else:
        load_dotenv(override=False)

    return Credentials(
        openai_api_key=os.environ.get(OPENAI_KEY_VAR) or None,
        groq_api_key=os.environ.get(GROQ_KEY_VAR) or None,
    )


def provider_from_credentials(
    credentials: Credentials,
    timeout: Optional[float] = None,
) -> CompletionProvider:
    """Build the provider selected by ``credentials``.

    Raises:
        ConfigurationError: If no key is available.
    """
    return create_provider(
        openai_key=credentials.openai_api_key,
        groq_key=credentials.groq_api_key,
        timeout=timeout,
    )


def env_provider_factory(
    env_file: Optional[Path | str] = None,
    timeout: Optional[float] = None,
) -> Callable[[], CompletionProvider]:
    """Factory that reads credentials and builds a provider on every call.

    Credentials are re-read each time so a server picks up keys added to
    the environment or the .env file after it started.
    """
    def factory() -> CompletionProvider:
        return provider_from_credentials(load_credentials(env_file), timeout=timeout)
    return factory
