"""Tests for the backlog schema and validation."""

import copy

import pytest

from agile_planner.generation.schema import (
    SchemaValidation,
    Violation,
    create_backlog_schema,
    find_duplicate_story_ids,
    validate_backlog,
)


class TestCreateBacklogSchema:
    """Tests for the schema definition."""

    def test_root_requires_all_sections(self):
        """Test the root requires epic, mvp and iterations."""
        schema = create_backlog_schema()

        assert schema["required"] == ["epic", "mvp", "iterations"]

    def test_cardinality_bounds(self):
        """Test MVP and iteration bounds."""
        schema = create_backlog_schema()
        mvp = schema["properties"]["mvp"]
        iterations = schema["properties"]["iterations"]

        assert (mvp["minItems"], mvp["maxItems"]) == (3, 5)
        assert (iterations["minItems"], iterations["maxItems"]) == (2, 3)

    def test_iteration_stories_reference_mvp_items(self):
        """Test iteration stories share the MVP story schema by reference."""
        schema = create_backlog_schema()
        stories = schema["properties"]["iterations"]["items"]["properties"]["stories"]

        assert stories["items"] == {"$ref": "#/properties/mvp/items"}

    def test_fresh_schema_each_call(self):
        """Test callers cannot corrupt the schema for later calls."""
        first = create_backlog_schema()
        first["properties"]["mvp"]["minItems"] = 99

        second = create_backlog_schema()

        assert second["properties"]["mvp"]["minItems"] == 3


class TestValidateBacklog:
    """Tests for validate_backlog."""

    def test_valid_backlog(self, backlog_data):
        """Test a conforming backlog has no violations."""
        result = validate_backlog(backlog_data)

        assert isinstance(result, SchemaValidation)
        assert result.valid is True
        assert result.violations == []
        assert result.error_message == ""

    def test_valid_with_dependencies(self, backlog_data):
        """Test optional dependencies are accepted."""
        backlog_data["iterations"][0]["stories"][0]["dependencies"] = ["US001", "US002"]

        assert validate_backlog(backlog_data).valid

    def test_extra_fields_accepted(self, backlog_data):
        """Test unknown fields do not fail validation."""
        backlog_data["mvp"][0]["story_points"] = 3

        assert validate_backlog(backlog_data).valid

    @pytest.mark.parametrize("field", ["epic", "mvp", "iterations"])
    def test_missing_section(self, backlog_data, field):
        """Test a missing top-level section is reported by name."""
        del backlog_data[field]

        result = validate_backlog(backlog_data)

        assert result.valid is False
        assert any(field in v.message for v in result.violations)
        assert result.violations[0].keyword == "required"
        assert result.violations[0].instance_path == ""

    def test_all_missing_sections_reported(self):
        """Test every missing property gets its own violation."""
        result = validate_backlog({})

        messages = {v.message for v in result.violations}
        assert messages == {
            "must have required property 'epic'",
            "must have required property 'mvp'",
            "must have required property 'iterations'",
        }

    def test_legacy_epics_shape_accepted(self, backlog_data):
        """Test the legacy 'epics' list is normalized before validation."""
        backlog_data["epics"] = [backlog_data.pop("epic")]

        assert validate_backlog(backlog_data).valid

    def test_legacy_empty_epics_reports_missing_epic(self, backlog_data):
        """Test an empty 'epics' list still fails on the missing epic."""
        del backlog_data["epic"]
        backlog_data["epics"] = []

        result = validate_backlog(backlog_data)

        assert not result.valid
        assert "must have required property 'epic'" in result.error_message

    def test_mvp_too_short(self, make_backlog):
        """Test minItems on mvp."""
        result = validate_backlog(make_backlog(mvp_count=1))

        assert not result.valid
        assert result.violations == [
            Violation("/mvp", "must NOT have fewer than 3 items", "minItems")
        ]
        assert result.error_message == "/mvp must NOT have fewer than 3 items"

    def test_mvp_too_long(self, make_backlog):
        """Test maxItems on mvp."""
        result = validate_backlog(make_backlog(mvp_count=6))

        assert not result.valid
        assert "/mvp must NOT have more than 5 items" in result.error_message

    @pytest.mark.parametrize("count,expected", [
        (1, "must NOT have fewer than 2 items"),
        (4, "must NOT have more than 3 items"),
    ])
    def test_iteration_count_bounds(self, make_backlog, count, expected):
        """Test iteration bounds."""
        result = validate_backlog(make_backlog(iteration_count=count))

        assert not result.valid
        assert f"/iterations {expected}" in result.error_message

    def test_bad_story_id(self, backlog_data):
        """Test the story id pattern."""
        backlog_data["mvp"][0]["id"] = "STORY-1"

        result = validate_backlog(backlog_data)

        assert not result.valid
        assert result.violations[0].instance_path == "/mvp/0/id"
        assert result.violations[0].keyword == "pattern"

    def test_story_id_with_trailing_newline(self, backlog_data):
        """Test an id that only matches the pattern before a newline is rejected."""
        backlog_data["mvp"][0]["id"] = "US001\n"

        result = validate_backlog(backlog_data)

        assert not result.valid
        assert result.violations == [
            Violation("/mvp/0/id", "must NOT have more than 5 characters", "maxLength")
        ]

    def test_bad_priority(self, backlog_data):
        """Test the priority enumeration."""
        backlog_data["mvp"][1]["priority"] = "URGENT"

        result = validate_backlog(backlog_data)

        assert not result.valid
        assert result.violations[0].instance_path == "/mvp/1/priority"
        assert result.violations[0].message == "must be equal to one of the allowed values"

    def test_too_few_acceptance_criteria(self, backlog_data):
        """Test at least two acceptance criteria are required."""
        backlog_data["mvp"][2]["acceptance_criteria"] = ["Only one"]

        result = validate_backlog(backlog_data)

        assert "/mvp/2/acceptance_criteria must NOT have fewer than 2 items" in result.error_message

    def test_iteration_story_uses_story_schema(self, backlog_data):
        """Test iteration stories are held to the MVP story rules."""
        del backlog_data["iterations"][0]["stories"][0]["tasks"]

        result = validate_backlog(backlog_data)

        assert not result.valid
        assert (
            "/iterations/0/stories/0 must have required property 'tasks'"
            in result.error_message
        )

    def test_iteration_without_stories(self, backlog_data):
        """Test an iteration needs at least one story."""
        backlog_data["iterations"][1]["stories"] = []

        result = validate_backlog(backlog_data)

        assert "/iterations/1/stories must NOT have fewer than 1 items" in result.error_message

    def test_empty_epic_title(self, backlog_data):
        """Test the epic title must be non-empty."""
        backlog_data["epic"]["title"] = ""

        result = validate_backlog(backlog_data)

        assert not result.valid
        assert result.violations[0].instance_path == "/epic/title"

    def test_multiple_violations_joined(self, backlog_data):
        """Test violations are joined with '; '."""
        backlog_data["mvp"][0]["id"] = "bad"
        backlog_data["mvp"][1]["priority"] = "NOPE"

        result = validate_backlog(backlog_data)

        assert len(result.violations) == 2
        assert result.error_message.count("; ") == 1
        assert "/mvp/0/id" in result.error_message
        assert "/mvp/1/priority" in result.error_message

    def test_non_object_root(self):
        """Test a non-object payload is reported at the root."""
        result = validate_backlog(["not", "a", "backlog"])

        assert not result.valid
        assert result.violations[0].message == "must be object"

    def test_idempotent_and_non_mutating(self, backlog_data):
        """Test validating twice gives the same result and leaves data untouched."""
        backlog_data["epics"] = [backlog_data.pop("epic")]
        backlog_data["mvp"] = backlog_data["mvp"][:1]
        snapshot = copy.deepcopy(backlog_data)

        first = validate_backlog(backlog_data)
        second = validate_backlog(backlog_data)

        assert first == second
        assert backlog_data == snapshot

    def test_custom_schema(self, backlog_data):
        """Test a caller-supplied schema is used."""
        schema = create_backlog_schema()
        schema["properties"]["mvp"]["maxItems"] = 2

        result = validate_backlog(backlog_data, schema)

        assert not result.valid
        assert "/mvp must NOT have more than 2 items" in result.error_message


class TestViolation:
    """Tests for violation formatting."""

    def test_str_with_path(self):
        assert str(Violation("/mvp", "must NOT have fewer than 3 items")) == (
            "/mvp must NOT have fewer than 3 items"
        )

    def test_str_at_root(self):
        assert str(Violation("", "must have required property 'epic'")) == (
            "must have required property 'epic'"
        )


class TestFindDuplicateStoryIds:
    """Tests for the duplicate id diagnostic."""

    def test_no_duplicates(self, backlog_data):
        assert find_duplicate_story_ids(backlog_data) == []

    def test_duplicates_across_mvp_and_iterations(self, backlog_data):
        """Test an id reused in an iteration is reported once."""
        backlog_data["iterations"][0]["stories"][0]["id"] = "US001"

        assert find_duplicate_story_ids(backlog_data) == ["US001"]

    def test_duplicates_do_not_fail_validation(self, backlog_data):
        """Test the schema itself does not enforce uniqueness."""
        backlog_data["mvp"][1]["id"] = "US001"

        assert validate_backlog(backlog_data).valid
        assert find_duplicate_story_ids(backlog_data) == ["US001"]
