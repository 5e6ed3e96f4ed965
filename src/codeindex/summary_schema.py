# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""File summary schema and tolerant JSON parsing."""

import json
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

SummaryTag = Literal["ui", "dataAccess", "utility", "feature"]

_OBJECT_START = re.compile(r"\{")
_DECODER = json.JSONDecoder()


class SummaryValidationError(RuntimeError):
    """Represent model output that does not satisfy the summary schema."""


class AlgorithmicLogic(BaseModel):
    model_config = ConfigDict(extra="allow")

    description: str = Field(default="", description="How the algorithms in the file work.")
    rationale: str = Field(default="", description="Why the algorithms were chosen.")


class BusinessLogic(BaseModel):
    model_config = ConfigDict(extra="allow")

    rules: str = Field(default="", description="Business rules implemented by the file.")
    workflows: str = Field(default="", description="Business workflows the code executes.")


class FlowDescription(BaseModel):
    model_config = ConfigDict(extra="allow")

    initialization: str = Field(default="", description="How the flow in the file starts.")
    processing_steps: list[str] = Field(
        default_factory=list,
        alias="processingSteps",
        description="Ordered processing steps of the flow.",
    )

    @field_validator("processing_steps", mode="before")
    @classmethod
    def _coerce_steps(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class FileSummary(BaseModel):
    """Schema-validated description of one file."""

    model_config = ConfigDict(populate_by_name=True)

    file_description: str = Field(
        alias="fileDescription",
        min_length=1,
        description="What the file does and its role in the codebase.",
    )
    tag: SummaryTag = Field(description="Primary role category of the file.")
    elements_detail: Any = Field(
        default=None,
        alias="elementsDetail",
        description="Per-element breakdown of functions, variables and methods.",
    )
    algorithmic_logic: AlgorithmicLogic | None = Field(
        default=None, alias="algorithmicLogic"
    )
    business_logic: BusinessLogic | None = Field(default=None, alias="businessLogic")
    flow_description: FlowDescription | None = Field(
        default=None, alias="flowDescription"
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def format_instructions() -> str:
    """Describe the expected output schema to the model."""
    schema = json.dumps(FileSummary.model_json_schema(by_alias=True), indent=2)
    return (
        "The output must be a JSON object that validates against this JSON schema. "
        "Do not wrap it in prose.\n"
        f"{schema}"
    )


def parse_summary(text: str) -> FileSummary:
    """Parse model output into a file summary.

    Args:
        text: Raw model output, optionally wrapped in a code fence or prose.

    Returns:
        Validated summary.

    Raises:
        SummaryValidationError: If no JSON object is found or validation fails.
    """
    data = _decode_json_object(text)
    try:
        return FileSummary.model_validate(data)
    except ValidationError as exc:
        raise SummaryValidationError(str(exc)) from exc


def _decode_json_object(text: str) -> dict[str, Any]:
    # The first brace that opens a complete object wins; braces or fences
    # inside string values are consumed by the decoder.
    first_error: json.JSONDecodeError | None = None
    for match in _OBJECT_START.finditer(text):
        try:
            value, _ = _DECODER.raw_decode(text, match.start())
        except json.JSONDecodeError as exc:
            first_error = first_error or exc
            continue
        if isinstance(value, dict):
            return value
    if first_error is not None:
        raise SummaryValidationError(f"Invalid JSON: {first_error}") from first_error
    raise SummaryValidationError("No JSON object found in model output.")
