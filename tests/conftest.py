"""Pytest configuration and shared fixtures."""

import json
from types import SimpleNamespace
from typing import Any

import pytest


def build_story(number: int, priority: str = "HIGH") -> dict:
    """A schema-valid user story numbered ``number``."""
    return {
        "id": f"US{number:03d}",
        "title": f"Story {number}",
        "description": f"As a user, I want feature {number}, so that I get value {number}",
        "acceptance_criteria": [f"Criterion {number}.1", f"Criterion {number}.2"],
        "tasks": [f"Task {number}.1", f"Task {number}.2"],
        "priority": priority,
    }


def build_backlog(mvp_count: int = 3, iteration_count: int = 2) -> dict:
    """A backlog dict; valid with the default counts."""
    mvp = [build_story(n) for n in range(1, mvp_count + 1)]
    next_id = mvp_count + 1
    iterations = []
    for i in range(1, iteration_count + 1):
        iterations.append({
            "name": f"Iteration {i}",
            "goal": f"Deliver increment {i}",
            "stories": [build_story(next_id, priority="MEDIUM")],
        })
        next_id += 1
    return {
        "epic": {"title": "Todo App", "description": "A collaborative todo list"},
        "mvp": mvp,
        "iterations": iterations,
    }


def completion_for(arguments: Any, name: str = "deliver_backlog") -> SimpleNamespace:
    """Fake SDK response carrying a function call with ``arguments``."""
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    function_call = SimpleNamespace(name=name, arguments=arguments)
    message = SimpleNamespace(content=None, function_call=function_call)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class StubProvider:
    """CompletionProvider returning canned responses in order.

    The last response repeats once the list is exhausted. Exceptions in
    the list are raised instead of returned.
    """

    name = "stub"
    model = "stub-model"

    def __init__(self, responses: list):
        self._responses = list(responses)
        self.requests: list = []

    def complete(self, request):
        self.requests.append(request)
        index = min(len(self.requests), len(self._responses)) - 1
        response = self._responses[index]
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def backlog_data() -> dict:
    """A schema-valid backlog (3 MVP stories, 2 iterations)."""
    return build_backlog()


@pytest.fixture
def make_backlog():
    """Factory for backlogs with custom MVP/iteration counts."""
    return build_backlog


@pytest.fixture
def make_completion():
    """Factory for fake completion responses."""
    return completion_for


@pytest.fixture
def stub_provider():
    """The StubProvider class, used as a factory."""
    return StubProvider


@pytest.fixture
def clean_env(monkeypatch):
    """Unset API keys for the test, restoring them afterwards."""
    for var in ("OPENAI_API_KEY", "GROQ_API_KEY"):
        # setenv first so monkeypatch records the original state
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    return monkeypatch
