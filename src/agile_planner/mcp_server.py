"""MCP server exposing backlog generation as tools.

Runs over stdio so editors and agents (Claude, Cursor, Windsurf) can ask
for a backlog directly. Tools return plain dicts: ``generateBacklog``
returns the Result Envelope, ``validateBacklog`` the schema report.

stdout carries the protocol, so nothing here prints.
"""

from pathlib import Path
from typing import Any, Callable, Optional

from mcp.server.fastmcp import FastMCP

from .config import env_provider_factory
from .errors import ConfigurationError
from .generation import BacklogGenerator, validate_backlog
from .generation_logger import GenerationLogger
from .markdown_generator import generate_markdown_files
from .models import BacklogResult, PlannerConfig
from .protocols import CompletionProvider


SERVER_NAME = "agile-planner"
SERVER_INSTRUCTIONS = (
    "Generates agile backlogs (one epic, 3-5 MVP user stories, 2-3 iterations) "
    "from a project description and renders them as markdown for coding agents."
)

ProviderFactory = Callable[[], CompletionProvider]


def _envelope(result: BacklogResult) -> dict:
    return result.model_dump(mode="json", exclude_none=True)


def run_generate_backlog(
    provider_factory: ProviderFactory,
    config: PlannerConfig,
    project_name: str,
    project_description: str = "",
    output_path: Optional[str] = None,
) -> dict:
    """Generate a backlog and, when ``output_path`` is set, render it there.

    Returns:
        The Result Envelope as a dict. Missing credentials and rendering
        errors come back as failure envelopes too.
    """
    try:
        provider = provider_factory()
    except ConfigurationError as e:
        return _envelope(BacklogResult.fail(str(e)))

    logger = None
    if output_path:
        logger = GenerationLogger(Path(output_path) / config.output_dir_name / "logs")

    result = BacklogGenerator(provider, config=config, logger=logger).generate(
        project_name, project_description
    )

    if result.success and output_path:
        rendered = generate_markdown_files(result, output_path, dir_name=config.output_dir_name)
        if not rendered.success:
            result = BacklogResult.fail(rendered.error.message)

    return _envelope(result)


def run_validate_backlog(backlog: Any) -> dict:
    """Check a backlog document against the schema."""
    validation = validate_backlog(backlog)
    return {
        "valid": validation.valid,
        "violations": [
            {"instance_path": v.instance_path, "message": v.message, "keyword": v.keyword}
            for v in validation.violations
        ],
        "error_message": validation.error_message,
    }


def register_backlog_tools(
    mcp: FastMCP,
    provider_factory: ProviderFactory,
    config: PlannerConfig,
) -> None:
    """Register the backlog tools with an MCP server."""

    @mcp.tool(name="generateBacklog")
    def generate_backlog_tool(
        project_name: str,
        project_description: str = "",
        output_path: str = "",
    ) -> dict:
        """Generate an agile backlog for a project.

        Args:
            project_name: Name or identifier of the project.
            project_description: Free-text description of what to build.
            output_path: Directory to render the markdown backlog into
                (optional; nothing is written when empty).

        Returns:
            {"success": true, "result": <backlog>} or
            {"success": false, "error": {"message": ...}}
        """
        return run_generate_backlog(
            provider_factory, config, project_name, project_description, output_path or None
        )

    @mcp.tool(name="validateBacklog")
    def validate_backlog_tool(backlog: dict) -> dict:
        """Validate a backlog JSON object against the backlog schema.

        Returns:
            {"valid": bool, "violations": [...], "error_message": str}
        """
        return run_validate_backlog(backlog)


def create_mcp_server(
    provider_factory: Optional[ProviderFactory] = None,
    config: Optional[PlannerConfig] = None,
    env_file: Optional[Path | str] = None,
) -> FastMCP:
    """Create the MCP server.

    Args:
        provider_factory: Builds a provider per call (default: read
            OPENAI_API_KEY / GROQ_API_KEY).
        config: Generation settings.
        env_file: .env file used by the default provider factory.
    """
    config = config or PlannerConfig()
    factory = provider_factory or env_provider_factory(
        env_file, timeout=config.request_timeout_seconds
    )

    mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS)
    register_backlog_tools(mcp, factory, config)
    return mcp


def run_mcp_server(env_file: Optional[Path | str] = None) -> None:
    """Serve the tools over stdio until the client disconnects."""
    create_mcp_server(env_file=env_file).run()
