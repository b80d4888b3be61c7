"""Tests for conversation construction."""

from types import SimpleNamespace

from agile_planner.generation.prompts import (
    FUNCTION_NAME,
    build_assistant_echo,
    build_correction_message,
    build_function_spec,
    build_messages,
)
from agile_planner.generation.schema import create_backlog_schema


class TestBuildMessages:
    """Tests for the initial three-turn conversation."""

    def test_three_turns(self):
        messages = build_messages("Todo: a todo app")

        assert [m["role"] for m in messages] == ["system", "user", "system"]

    def test_description_is_verbatim(self):
        """Test the user turn carries the description unchanged."""
        description = "Shop: sells {curly} things & more\nsecond line"

        messages = build_messages(description)

        assert messages[1]["content"] == f"Project description: {description}"

    def test_json_constraint_and_shape(self):
        messages = build_messages("x")

        assert "valid JSON" in messages[0]["content"]
        assert "'epic'" in messages[2]["content"]
        assert "3 to 5" in messages[2]["content"]
        assert "2 to 3" in messages[2]["content"]

    def test_deterministic(self):
        assert build_messages("same") == build_messages("same")

    def test_fresh_list_each_call(self):
        """Test callers can extend the result without side effects."""
        first = build_messages("x")
        first.append({"role": "system", "content": "extra"})

        assert len(build_messages("x")) == 3


class TestRepairTurns:
    """Tests for the echo and correction turns."""

    def test_function_spec(self):
        schema = create_backlog_schema()

        spec = build_function_spec(schema)

        assert spec["name"] == FUNCTION_NAME
        assert spec["parameters"] is schema

    def test_echo_from_sdk_object(self):
        call = SimpleNamespace(name="deliver_backlog", arguments='{"mvp": []}')

        echo = build_assistant_echo(call)

        assert echo == {
            "role": "assistant",
            "content": None,
            "function_call": {"name": "deliver_backlog", "arguments": '{"mvp": []}'},
        }

    def test_echo_from_dict_with_parsed_arguments(self):
        """Test non-string arguments are re-serialized."""
        echo = build_assistant_echo({"name": "deliver_backlog", "arguments": {"mvp": []}})

        assert echo["function_call"]["arguments"] == '{"mvp": []}'

    def test_correction_message(self):
        message = build_correction_message("/mvp must NOT have fewer than 3 items")

        assert message["role"] == "system"
        assert "/mvp must NOT have fewer than 3 items" in message["content"]
        assert FUNCTION_NAME in message["content"]
