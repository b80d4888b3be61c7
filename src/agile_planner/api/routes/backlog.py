"""Backlog generation and validation endpoints."""

from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request
from pydantic import BaseModel, Field

from ...errors import ConfigurationError
from ...generation import BacklogGenerator, validate_backlog
from ...models import BacklogResult

router = APIRouter()


class GenerateRequest(BaseModel):
    """Body of a generation request."""
    project_name: str = Field(..., min_length=1)
    description: str = ""


class ViolationResponse(BaseModel):
    """One schema violation."""
    instance_path: str
    message: str
    keyword: str = ""


class ValidationResponse(BaseModel):
    """Result of validating a backlog document."""
    valid: bool
    violations: list[ViolationResponse] = []
    error_message: str = ""


@router.post("/backlog/generate", response_model=BacklogResult, response_model_exclude_none=True)
def generate(request: Request, body: GenerateRequest) -> BacklogResult:
    """Generate a backlog for a project.

    Runs in the threadpool: each attempt is a blocking round trip.
    """
    try:
        provider = request.app.state.provider_factory()
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))

    generator = BacklogGenerator(provider, config=request.app.state.config)
    result = generator.generate(body.project_name, body.description)

    if not result.success:
        raise HTTPException(status_code=502, detail=result.error.message)

    return result


@router.post("/backlog/validate", response_model=ValidationResponse)
async def validate(document: Any = Body(None)) -> ValidationResponse:
    """Validate a backlog document against the schema."""
    validation = validate_backlog(document)
    return ValidationResponse(
        valid=validation.valid,
        violations=[
            ViolationResponse(
                instance_path=v.instance_path,
                message=v.message,
                keyword=v.keyword,
            )
            for v in validation.violations
        ],
        error_message=validation.error_message,
    )
