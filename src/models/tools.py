"""Tool outcome variants and the per-handler invocation record.

Every tool returns exactly one of four tagged outcomes.  Handlers match on
the concrete class and produce a distinct reply for each, so a duplicate
registration never reads like a fresh one and a missing field never reads
like an outage.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ToolSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: Literal["success"] = "success"
    id: str = Field(description="Identifier assigned by the external system (e.g. CRM lead id).")


class ToolDuplicate(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: Literal["duplicate"] = "duplicate"
    existing_id: str


class ToolValidationError(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: Literal["validation_error"] = "validation_error"
    missing_field: str
    detail: str = ""


class ToolFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: Literal["failure"] = "failure"
    reason: str


ToolOutcome = Annotated[
    Union[ToolSuccess, ToolDuplicate, ToolValidationError, ToolFailure],
    Field(discriminator="tag"),
]


class ToolInvocation(BaseModel):
    """A single tool call requested by the model during one handler run."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: ToolOutcome


def describe_outcome(outcome: ToolSuccess | ToolDuplicate | ToolValidationError | ToolFailure) -> str:
    """Short text fed back to the model as the tool result."""
    match outcome:
        case ToolSuccess(id=record_id):
            return f"success: created record {record_id}"
        case ToolDuplicate(existing_id=existing_id):
            return f"duplicate: a record already exists ({existing_id}); do not create another"
        case ToolValidationError(missing_field=field, detail=detail):
            return f"validation_error: '{field}' is missing or invalid. {detail}".strip()
        case ToolFailure(reason=reason):
            return f"failure: {reason}"
    raise TypeError(f"Unhandled tool outcome: {outcome!r}")


class ToolRunResult(BaseModel):
    """Final text of a tool-augmented generation plus every tool it ran."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    invocations: list[ToolInvocation] = Field(default_factory=list)
    steps: int = 0

    @property
    def last_outcome(self) -> ToolSuccess | ToolDuplicate | ToolValidationError | ToolFailure | None:
        return self.invocations[-1].result if self.invocations else None
