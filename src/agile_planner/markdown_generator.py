"""Markdown rendering of a generated backlog.

Turns a successful BacklogResult into a directory tree that AI coding
agents can work through:

    .agile-planner-backlog/
        README.md
        backlog.json
        epics/epic.md
        mvp/user-stories.md
        mvp/user-stories/<story>.md
        mvp/user-stories/<story>-tasks/task-<n>.md
        iterations/<iteration>/iteration.md
        iterations/<iteration>/user-stories/...

The renderer trusts the backlog: it has already passed schema validation.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .models import Backlog, BacklogResult, Epic, ErrorInfo, Iteration, UserStory


DEFAULT_OUTPUT_DIR_NAME = ".agile-planner-backlog"

AI_AUTOMATION_INSTRUCTIONS = """
## 🤖 Instructions for AI

As an AI assistant, follow these guidelines when analyzing this document:
- Process the tasks below in the sequential order indicated
- Once a task is accomplished, mark it as completed by checking its box ([ ] → [x])
- Wait for user confirmation before moving to the next task
- Respect dependencies between tasks when mentioned
- Provide relevant suggestions based on acceptance criteria

---

"""

EPIC_FILE_INSTRUCTIONS = """
## 🤖 Epic Processing Instructions for AI

This file defines the main Epic of the project. When working with this file:
- Understand the overall vision and scope of the project from the Epic description
- Use this Epic as the strategic direction for all implementation work
- When implementing User Stories, always verify alignment with this Epic
- Suggest refinements to the Epic only if substantial project changes occur

---

"""

MVP_FILE_INSTRUCTIONS = """
## 🤖 MVP User Stories Instructions for AI

This file contains the Minimum Viable Product (MVP) User Stories that must be implemented first:
- Each User Story follows the format: "As a [role], I want [feature], so that [benefit]"
- Acceptance Criteria define the expected behavior and requirements
- Technical Tasks outline implementation steps (2-8 hour chunks of work)
- Priority indicates implementation order (HIGH → MEDIUM → LOW)
- Complete all HIGH priority stories before moving to MEDIUM priority ones

When implementing:
1. Start with one User Story at a time, in priority order
2. Implement all Technical Tasks for that User Story
3. Verify implementation against Acceptance Criteria
4. Mark User Story as complete only when all Acceptance Criteria are satisfied

---

"""

ITERATION_FILE_INSTRUCTIONS = """
## 🤖 Iteration Planning Instructions for AI

This file contains User Stories for a specific iteration (development cycle):
- The Iteration has a specific goal and thematic focus
- User Stories in this iteration contribute to that specific goal
- Dependencies indicate User Stories that must be completed first
- Only move to Iteration stories after completing the MVP User Stories

When planning work:
1. Check that all dependencies are completed first
2. Focus on delivering the cohesive goal of this iteration
3. Implement in priority order within the iteration
4. Report progress against the iteration goal

---

"""

README_CONTENT = """# Agile Backlog

- [Epic](./epics/epic.md)
- [MVP](./mvp/user-stories.md)
- [Iterations](./iterations/)
- [Raw Backlog](./backlog.json)
"""


@dataclass
class RenderResult:
    """Outcome of rendering a backlog to markdown."""
    success: bool
    output_dir: Optional[Path] = None
    files: list[Path] = field(default_factory=list)
    error: Optional[ErrorInfo] = None
    warnings: list[str] = field(default_factory=list)


def create_slug(text: Optional[str]) -> str:
    """Lowercase ``text`` and collapse runs of other characters into '-'."""
    return re.sub(r"[^a-z0-9]+", "-", (text or "item").lower())


def format_user_story(story: UserStory) -> str:
    """Render one user story as a markdown checklist."""
    content = f"## {story.id}: {story.title}\n\n"
    content += f"- [ ] {story.description}\n\n"
    content += f"**Priority:** {story.priority.value}\n\n"

    if story.dependencies:
        content += f"**Dependencies:** {', '.join(story.dependencies)}\n\n"

    content += "### Acceptance Criteria\n"
    for criteria in story.acceptance_criteria:
        content += f"- [ ] {criteria}\n"

    content += "\n### Technical Tasks\n"
    for task in story.tasks:
        content += f"- [ ] {task}\n"

    content += "\n---\n\n"
    return content


def save_raw_backlog(backlog: Backlog, output_dir: Path | str) -> Path:
    """Write the backlog as pretty-printed JSON to ``backlog.json``."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / "backlog.json"
    json_path.write_text(
        json.dumps(backlog.to_json_dict(), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return json_path


class MarkdownGenerator:
    """Writes the markdown tree for a backlog."""

    def __init__(self, output_dir: Path | str, dir_name: str = DEFAULT_OUTPUT_DIR_NAME):
        """Initialize the generator.

        Args:
            output_dir: Parent directory; files go under ``output_dir/dir_name``.
            dir_name: Name of the backlog directory.
        """
        self.root = Path(output_dir) / dir_name
        self.files: list[Path] = []
        self.warnings: list[str] = []
        self._claimed: set[Path] = set()

    def _claim(self, parent_dir: Path, slug: str, label: str) -> str:
        """Return ``slug``, suffixed with -2, -3, ... if already used under ``parent_dir``."""
        candidate = slug
        n = 2
        while parent_dir / candidate in self._claimed:
            candidate = f"{slug}-{n}"
            n += 1
        if candidate != slug:
            self.warnings.append(
                f"{label} maps to '{slug}' which is already used; written as '{candidate}'"
            )
        self._claimed.add(parent_dir / candidate)
        return candidate

    def _write(self, path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self.files.append(path)
        return path

    def render(self, backlog: Backlog) -> list[Path]:
        """Write every file for ``backlog`` and return their paths."""
        self.files = []
        self.warnings = []
        self._claimed = set()
        self.root.mkdir(parents=True, exist_ok=True)

        self._write(self.root / "README.md", README_CONTENT)
        self._write_epic(backlog.epic)
        self._write_mvp(backlog.mvp)
        self._write_iterations(backlog.iterations)
        self.files.append(save_raw_backlog(backlog, self.root))

        return self.files

    def _write_epic(self, epic: Epic) -> None:
        content = (
            AI_AUTOMATION_INSTRUCTIONS + EPIC_FILE_INSTRUCTIONS
            + f"# Epic: {epic.title}\n\n{epic.description}\n"
        )
        self._write(self.root / "epics" / "epic.md", content)

    def _write_mvp(self, stories: list[UserStory]) -> None:
        mvp_dir = self.root / "mvp"
        content = (
            AI_AUTOMATION_INSTRUCTIONS + MVP_FILE_INSTRUCTIONS
            + "# MVP - User Stories\n\n"
            + "This file contains all user stories for the Minimum Viable Product (MVP).\n\n"
        )
        self._write(mvp_dir / "user-stories.md", content)

        for story in stories:
            self._write_story(story, mvp_dir / "user-stories")

    def _write_iterations(self, iterations: list[Iteration]) -> None:
        for iteration in iterations:
            iterations_dir = self.root / "iterations"
            slug = self._claim(
                iterations_dir, create_slug(iteration.name), f"Iteration '{iteration.name}'"
            )
            iteration_dir = iterations_dir / slug
            content = (
                AI_AUTOMATION_INSTRUCTIONS + ITERATION_FILE_INSTRUCTIONS
                + f"# {iteration.name or 'Iteration'}\n"
            )
            if iteration.goal:
                content += f"\n## Goal: {iteration.goal}\n"
            self._write(iteration_dir / "iteration.md", content)

            for story in iteration.stories:
                self._write_story(story, iteration_dir / "user-stories")

    def _write_story(self, story: UserStory, parent_dir: Path) -> None:
        slug = self._claim(parent_dir, create_slug(story.id or story.title), f"Story {story.id}")
        self._write(parent_dir / f"{slug}.md", format_user_story(story))

        tasks_dir = parent_dir / f"{slug}-tasks"
        for idx, task in enumerate(story.tasks, start=1):
            self._write(tasks_dir / f"task-{idx}.md", f"# Task\n\n{task}\n")


def generate_markdown_files(
    result: BacklogResult,
    output_dir: Path | str,
    dir_name: str = DEFAULT_OUTPUT_DIR_NAME,
) -> RenderResult:
    """Render a generation result to markdown.

    Failed results are passed through without touching the filesystem.
    I/O errors are reported in the RenderResult rather than raised.
    """
    if not result.success or result.result is None:
        error = result.error or ErrorInfo(message="Backlog result is missing or invalid")
        return RenderResult(success=False, error=error)

    generator = MarkdownGenerator(output_dir, dir_name=dir_name)
    try:
        files = generator.render(result.result)
    except OSError as e:
        return RenderResult(
            success=False,
            output_dir=generator.root,
            files=list(generator.files),
            error=ErrorInfo(message=f"Error generating markdown files: {e}"),
        )

    return RenderResult(
        success=True,
        output_dir=generator.root,
        files=files,
        warnings=list(generator.warnings),
    )
